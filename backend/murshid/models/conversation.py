# murshid/models/conversation.py
"""
Database models for chat conversations.
A conversation belongs to one user and holds an ordered list of messages
exchanged with the assistant.
"""
import uuid
from tortoise import fields, models

MESSAGE_ROLES = ("user", "assistant")


class Conversation(models.Model):
    """
    Conversation database model.

    Relationships:
    - Belongs to a User (many-to-one)
    - Has many Messages (one-to-many, via related_name="messages")

    Deleting through the API only sets is_deleted; reads filter on it.
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user = fields.ForeignKeyField(
        "models.User",
        related_name="conversations",
        on_delete=fields.CASCADE,
    )
    title = fields.CharField(max_length=100, default="New Conversation")
    is_deleted = fields.BooleanField(default=False)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "conversations"


class Message(models.Model):
    id = fields.IntField(pk=True)
    conversation = fields.ForeignKeyField(
        "models.Conversation",
        related_name="messages",
        on_delete=fields.CASCADE,
    )
    seq = fields.IntField()  # Position within the conversation, starting at 1
    role = fields.CharField(max_length=16)  # "user" or "assistant"
    content = fields.TextField()
    timestamp = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "conversation_messages"
        unique_together = (("conversation", "seq"),)

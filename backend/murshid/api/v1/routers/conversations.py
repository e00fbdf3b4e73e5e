# murshid/api/v1/routers/conversations.py
import uuid

from fastapi import APIRouter, Depends, Response, status

from murshid.api.v1.deps import get_current_user
from murshid.core.errors import NotFound
from murshid.models.conversation import Conversation, Message
from murshid.models.user import User
from murshid.schemas.conversation import CreateConversationIn, UpdateConversationIn

router = APIRouter(prefix="/conversations", tags=["conversations"])

DEFAULT_TITLE = "New Conversation"


def _conversation_out(c: Conversation, messages: list[Message] | None = None) -> dict:
    out = {
        "id": str(c.id),
        "title": c.title,
        "createdAt": c.created_at.isoformat(),
        "updatedAt": c.updated_at.isoformat(),
    }
    if messages is not None:
        out["messages"] = [
            {"role": m.role, "content": m.content, "timestamp": m.timestamp.isoformat()}
            for m in messages
        ]
    return out


async def _get_owned(cid: uuid.UUID, user: User) -> Conversation:
    c = await Conversation.get_or_none(id=cid, user_id=user.id, is_deleted=False)
    if not c:
        raise NotFound("No conversation found with that ID")
    return c


async def _messages(c: Conversation) -> list[Message]:
    return await Message.filter(conversation_id=c.id).order_by("seq")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_conversation(body: CreateConversationIn, user: User = Depends(get_current_user)):
    title = (body.title or "").strip() or DEFAULT_TITLE
    c = await Conversation.create(user_id=user.id, title=title)
    return {"status": "success", "data": {"conversation": _conversation_out(c, [])}}


@router.get("")
async def list_conversations(user: User = Depends(get_current_user)):
    """
    Conversations of the authenticated user, most recently updated first.

    Messages are left out of the listing; fetch a single conversation for them.
    """
    rows = await Conversation.filter(user_id=user.id, is_deleted=False).order_by("-updated_at")
    return {
        "status": "success",
        "results": len(rows),
        "data": {"conversations": [_conversation_out(c) for c in rows]},
    }


@router.get("/{cid}")
async def get_conversation(cid: uuid.UUID, user: User = Depends(get_current_user)):
    c = await _get_owned(cid, user)
    return {"status": "success", "data": {"conversation": _conversation_out(c, await _messages(c))}}


@router.patch("/{cid}")
async def update_conversation(cid: uuid.UUID, body: UpdateConversationIn, user: User = Depends(get_current_user)):
    """
    Append messages and/or rename.

    Appended messages keep their request order after the existing ones.
    """
    c = await _get_owned(cid, user)

    seq = await Message.filter(conversation_id=c.id).count()
    for m in body.messages:
        seq += 1
        await Message.create(conversation_id=c.id, seq=seq, role=m.role, content=m.content)

    title = (body.title or "").strip()
    if title:
        c.title = title
    # Touch updated_at so the conversation moves to the top of the list
    await c.save()
    return {"status": "success", "data": {"conversation": _conversation_out(c, await _messages(c))}}


@router.delete("/{cid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(cid: uuid.UUID, user: User = Depends(get_current_user)):
    c = await _get_owned(cid, user)
    c.is_deleted = True
    await c.save()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

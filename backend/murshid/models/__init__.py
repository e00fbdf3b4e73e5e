# murshid/models/__init__.py
"""
Database models module initialization.
Exports all Tortoise ORM models for convenient imports.

Models exported:
- User: credential record (authentication, verification, lifecycle flags)
- Profile: onboarding profile (1:1 with User)
- Conversation / Message: chat history
- QuizResult: completed quizzes
"""
from .user import User
from .profile import Profile
from .conversation import Conversation, Message
from .result import QuizResult

# murshid/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Default admin creation on startup
- db: Database configuration and connection management
- errors: Error taxonomy and the JSON error envelope
- guard: Route guard middleware and token extraction
- security: Password hashing, session tokens and one-time codes
"""

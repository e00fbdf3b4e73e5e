"""
Services Module

Business logic behind the HTTP routes:
- credential_store: User lookups and writes (soft-delete aware)
- otp_service: One-time codes for signup and password reset
- session_service: Password login, session tokens, password changes
- oauth_bridge / google_oauth: Google sign-in
- onboarding_service: Profile and onboarding state
- email_service: SMTP delivery
- progress: Quiz result aggregation
"""

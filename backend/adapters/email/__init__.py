from .resend_adapter import ResendEmailService, email_service

__all__ = ["ResendEmailService", "email_service"]

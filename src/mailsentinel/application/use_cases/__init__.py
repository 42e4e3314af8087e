from mailsentinel.application.use_cases.mailbox import MailboxService

__all__ = ["MailboxService"]

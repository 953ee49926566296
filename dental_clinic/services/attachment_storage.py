"""
Attachment storage collaborator.

Files live outside the database; the core only asks the storage to drop
everything it holds for an appointment before the appointment rows go.
"""
import logging

from flask import current_app

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'attachment_storage'


class AttachmentStorage:
    """Interface expected from the storage backend."""

    def delete_attachments_for(self, appointment_id: int) -> bool:
        """Remove every stored file of the appointment; True once confirmed."""
        raise NotImplementedError


class NullAttachmentStorage(AttachmentStorage):
    """Used when no storage backend is installed; nothing to remove."""

    def delete_attachments_for(self, appointment_id: int) -> bool:
        logger.debug("No attachment storage configured; nothing to delete for %s", appointment_id)
        return True


def set_attachment_storage(app, storage: AttachmentStorage) -> None:
    app.extensions[EXTENSION_KEY] = storage


def get_attachment_storage() -> AttachmentStorage:
    return current_app.extensions.get(EXTENSION_KEY) or NullAttachmentStorage()

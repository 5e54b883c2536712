import logging
from typing import Any, Optional, Sequence

from overtime_api.core.exceptions import NotFoundError
from overtime_api.schemas.settings import NotificationRecipients, SettingRecord
from overtime_api.storage.base import RequestStore

logger = logging.getLogger(__name__)

NOTIFICATION_RECIPIENTS_KEY = "notification_recipients"


class SettingsService:
    def __init__(self, store: RequestStore):
        self.store = store

    def get_setting(self, key: str) -> SettingRecord:
        setting = self.store.get_setting(key)
        if setting is None:
            raise NotFoundError(f"Setting '{key}' not found")
        return setting

    def get_all_settings(self) -> Sequence[SettingRecord]:
        return self.store.list_settings()

    def upsert_setting(self, key: str, value: Any, description: Optional[str] = None) -> SettingRecord:
        setting = self.store.upsert_setting(key, value, description)
        logger.info(f"Setting '{key}' updated")
        return setting

    def delete_setting(self, key: str) -> None:
        if not self.store.delete_setting(key):
            raise NotFoundError(f"Setting '{key}' not found")
        logger.info(f"Setting '{key}' deleted")

    def get_notification_recipients(self) -> NotificationRecipients:
        setting = self.store.get_setting(NOTIFICATION_RECIPIENTS_KEY)
        if setting is None or not isinstance(setting.value, dict):
            return NotificationRecipients()
        return NotificationRecipients.model_validate(setting.value)

    def update_notification_recipients(self, recipients: NotificationRecipients) -> SettingRecord:
        return self.upsert_setting(
            NOTIFICATION_RECIPIENTS_KEY,
            recipients.model_dump(mode="json"),
            "Additional e-mail addresses notified of new requests",
        )

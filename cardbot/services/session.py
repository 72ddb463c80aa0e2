import logging
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

class UserSession(BaseModel):
    """Авторизация пользователя в сервисе профилей."""
    token: str
    user: Dict[str, Any] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.user.get("name") or self.user.get("email") or "user"

class SessionStore:
    """Сессии по telegram_id. Устанавливаются при /login, удаляются при /logout."""
    def __init__(self):
        self._sessions: Dict[int, UserSession] = {}

    def get(self, telegram_id: int) -> Optional[UserSession]:
        return self._sessions.get(telegram_id)

    def set(self, telegram_id: int, session: UserSession) -> None:
        self._sessions[telegram_id] = session
        logger.info(f"Session opened for user {telegram_id}")

    def clear(self, telegram_id: int) -> bool:
        removed = self._sessions.pop(telegram_id, None) is not None
        if removed:
            logger.info(f"Session closed for user {telegram_id}")
        return removed

session_store = SessionStore()

from enum import Enum

from wishclient.api.routes import Navigate
from wishclient.core.session import AuthResult, SessionStore


class FormMode(str, Enum):
    LOGIN = "login"
    REGISTER = "register"


class LoginController:
    """Login / registration form. Navigation is returned, never performed."""

    def __init__(self, session: SessionStore) -> None:
        self._session = session
        self.mode = FormMode.LOGIN
        self.error = ""
        self.notice = ""
        self.submitting = False

    def toggle(self) -> None:
        self.mode = FormMode.REGISTER if self.mode is FormMode.LOGIN else FormMode.LOGIN
        self.error = ""

    async def submit(
        self,
        email_or_username: str,
        password: str,
        username: str = "",
    ) -> Navigate | None:
        self.error = ""
        self.notice = ""
        self.submitting = True
        try:
            if self.mode is FormMode.REGISTER:
                result = await self._session.register(username, email_or_username, password)
                return self._after_register(result)
            result = await self._session.establish(email_or_username, password)
        finally:
            self.submitting = False

        if not result:
            self.error = result.message
            return None
        return result.navigate

    def _after_register(self, result: AuthResult) -> None:
        if not result:
            self.error = result.message
            return None
        self.notice = result.message
        self.mode = FormMode.LOGIN
        return None

# Time and identifier sources shared by the session and submission services.

import secrets
import time
import uuid


class SystemClock:
    def now(self) -> float:
        return time.time()


def new_token() -> str:
    return secrets.token_urlsafe(32)


def new_submission_id() -> str:
    return str(uuid.uuid4())

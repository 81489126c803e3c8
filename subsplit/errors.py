from typing import Optional

from fastapi import HTTPException
from starlette import status


class HTTPBadRequest(HTTPException):
    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConfigError(Exception):
    """
    Configuration could not be loaded. Fatal at startup.
    """


class SplitError(Exception):
    def __init__(self, split: str, returncode: int) -> None:
        super().__init__(f"split {split!r} exited with status {returncode}")
        self.split = split
        self.returncode = returncode

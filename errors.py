from typing import Optional

from fastapi import HTTPException


class Unauthenticated(HTTPException):
    """The action needs a signed-in user and the request carries none"""

    def __init__(self, detail: str = "Please log in to continue"):
        super().__init__(status_code=401, detail=detail)


class Unauthorized(HTTPException):
    """The caller is signed in but does not own the resource"""

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(status_code=403, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)


class InvalidRequest(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class StoreFailure(HTTPException):
    """
    A document store call failed (network, contention, quota).

    Nothing about the attempted mutation may be assumed committed; the caller
    is free to re-invoke the operation.
    """

    def __init__(self, detail: str = "Document store unavailable", cause: Optional[Exception] = None):
        super().__init__(status_code=503, detail=detail)
        self.cause = cause


class PartialCascadeFailure(HTTPException):
    """
    A post deletion stopped partway through its cascade.

    Children removed before the failure stay removed; no rollback is attempted.
    """

    def __init__(self, post_id: str, step: str, cause: Optional[Exception] = None):
        super().__init__(
            status_code=500,
            detail=f"Failed to delete post {post_id} while deleting {step}"
        )
        self.post_id = post_id
        self.step = step
        self.cause = cause

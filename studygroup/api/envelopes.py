"""HTTP status codes for failed action envelopes."""

from fastapi import Response, status

from studygroup.schemas.base import ActionResult

STATUS_BY_REASON = {
    "not_authenticated": status.HTTP_401_UNAUTHORIZED,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "invalid": status.HTTP_400_BAD_REQUEST,
    "conflict": status.HTTP_409_CONFLICT,
    "precondition": 422,
    "backend": status.HTTP_502_BAD_GATEWAY,
}


def respond(result: ActionResult, response: Response, success_status: int = status.HTTP_200_OK):
    """Set the response status from the envelope and return the envelope as the body."""
    if result.success:
        response.status_code = success_status
    else:
        response.status_code = STATUS_BY_REASON.get(result.reason, status.HTTP_400_BAD_REQUEST)
    return result

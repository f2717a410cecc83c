from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from app.core import deps
from app.core.exceptions import SelectionValidationError
from app.modules.tokens import schemas
from app.modules.tokens.service import TokenIssuer

router = APIRouter()

@router.post("/token", response_model=schemas.IssuedToken)
def generate_stream_token(
    request: schemas.TokenRequest,
    issuer: TokenIssuer = Depends(deps.get_issuer),
) -> Any:
    """
    Issue a grant for one content/quality/episode selection.
    """
    try:
        return issuer.issue(request)
    except SelectionValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.as_detail())

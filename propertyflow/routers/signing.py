# propertyflow/routers/signing.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import SignIn
from ..services.signing import open_signing_session, sign, signing_document

# Public: the token in the URL is the only credential.
router = APIRouter(prefix="/sign", tags=["signing"])


def _client_ip(request: Request) -> Optional[str]:
    fwd = request.headers.get("x-forwarded-for")
    if fwd:
        return fwd.split(",")[0].strip() or None
    return request.client.host if request.client else None


@router.get("/{token}")
def get_signing_session(token: str, request: Request, db: Session = Depends(get_db)):
    return open_signing_session(
        db,
        token,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


@router.get("/{token}/document")
def get_signing_document(token: str, db: Session = Depends(get_db)):
    content, content_type, name = signing_document(db, token)
    safe = "".join(c for c in name if c.isalnum() or c in " -_").strip() or "lease"
    ext = "pdf" if content_type == "application/pdf" else "html"
    return Response(
        content=content,
        media_type=content_type,
        headers={"Content-Disposition": f'inline; filename="{safe}.{ext}"'},
    )


@router.post("/{token}")
def post_signature(token: str, payload: SignIn, request: Request, db: Session = Depends(get_db)):
    return sign(
        db,
        token,
        signature_data_url=payload.signature_data_url,
        signer_name=payload.signer_name,
        signer_email=payload.signer_email,
        consent=payload.consent,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

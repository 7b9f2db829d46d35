"""JSON views of share links."""

from django.http import HttpRequest, JsonResponse

from blobdrive.apps.files.http import api_view, json_body, required
from blobdrive.apps.shares.logic.share_operations import (
    create_share_link,
    resolve_share_link,
)


@api_view('POST')
def create_share(request: HttpRequest, identity: str) -> JsonResponse:
    """Create a share link (``{"file_id": ..., "ttl_days": 7}``)."""
    payload = json_body(request)
    ttl_days = payload.get('ttl_days')
    grant = create_share_link(
        identity,
        required(payload, 'file_id'),
        ttl_days=None if ttl_days is None else int(ttl_days),
    )
    return JsonResponse(grant.as_dict(), status=201)


@api_view('GET', allow_anonymous=True)
def resolve_share(
    request: HttpRequest,
    identity: str,
    share_id: str,
) -> JsonResponse:
    """Resolve a share token into a read URL."""
    return JsonResponse(resolve_share_link(identity, share_id).as_dict())

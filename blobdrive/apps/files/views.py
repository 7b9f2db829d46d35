"""JSON views of the virtual filesystem.

Views stay thin: parse the request, call the logic layer, serialize.
"""

from django.http import HttpRequest, HttpResponse, JsonResponse

from blobdrive.apps.files.http import json_body, required, tenant_view
from blobdrive.apps.files.infrastructure.storage import TenantStorage
from blobdrive.apps.files.logic import hierarchy, object_operations
from blobdrive.apps.files.logic.tag_operations import set_tags


@tenant_view('GET')
def list_files(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """List one folder level (``?prefix=docs/``)."""
    items = hierarchy.list_level(storage, request.GET.get('prefix', ''))
    return JsonResponse({'files': [item.as_dict() for item in items]})


@tenant_view('POST')
def upload(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """Upload the multipart ``file`` field into folder ``path``."""
    uploaded = request.FILES.get('file')
    if uploaded is None:
        raise ValueError('No file provided')
    item = object_operations.upload_file(
        storage,
        uploaded,
        folder_path=request.POST.get('path', ''),
        file_name=uploaded.name,
        content_type=uploaded.content_type,
    )
    return JsonResponse({'file': item.as_dict()}, status=201)


@tenant_view('GET')
def download(request: HttpRequest, storage: TenantStorage) -> HttpResponse:
    """Stream an object back as an attachment (``?id=``)."""
    downloaded = object_operations.download_file(
        storage,
        required(request.GET, 'id'),
    )
    response = HttpResponse(
        downloaded.content,
        content_type=downloaded.content_type,
    )
    response['Content-Disposition'] = (
        f'attachment; filename="{downloaded.file_name}"'
    )
    return response


@tenant_view('POST')
def create_folder(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """Create a folder (``{"path": "docs/reports"}``)."""
    payload = json_body(request)
    item = object_operations.create_folder(storage, required(payload, 'path'))
    return JsonResponse({'folder': item.as_dict()}, status=201)


@tenant_view('POST')
def soft_delete(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """Move an item to the recycle bin."""
    keys = object_operations.soft_delete(
        storage,
        required(json_body(request), 'id'),
    )
    return JsonResponse({'deleted': keys})


@tenant_view('POST')
def restore(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """Take an item out of the recycle bin."""
    keys = object_operations.restore(
        storage,
        required(json_body(request), 'id'),
    )
    return JsonResponse({'restored': keys})


@tenant_view('POST', 'DELETE')
def permanent_delete(
    request: HttpRequest,
    storage: TenantStorage,
) -> JsonResponse:
    """Delete an item for good."""
    keys = object_operations.permanent_delete(
        storage,
        required(json_body(request), 'id'),
    )
    return JsonResponse({'deleted': keys})


@tenant_view('PATCH')
def rename(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """Rename an item (``{"id": ..., "new_name": ...}``)."""
    payload = json_body(request)
    item = object_operations.rename(
        storage,
        required(payload, 'id'),
        required(payload, 'new_name'),
    )
    return JsonResponse({'file': item.as_dict()})


@tenant_view('POST')
def copy(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """Copy an item into a folder (``{"id": ..., "destination_id": ...}``)."""
    payload = json_body(request)
    item = object_operations.copy(
        storage,
        required(payload, 'id'),
        required(payload, 'destination_id'),
    )
    return JsonResponse({'file': item.as_dict()})


@tenant_view('POST')
def move(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """Move an item into a folder."""
    payload = json_body(request)
    item = object_operations.move(
        storage,
        required(payload, 'id'),
        required(payload, 'destination_id'),
    )
    return JsonResponse({'file': item.as_dict()})


@tenant_view('PUT')
def update_tags(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """Replace the tags of an item (``{"id": ..., "tags": [...]}``)."""
    payload = json_body(request)
    tags = payload.get('tags', [])
    if not isinstance(tags, list):
        raise ValueError('tags must be a list')
    item = set_tags(storage, required(payload, 'id'), [str(tag) for tag in tags])
    return JsonResponse({'file': item.as_dict()})


@tenant_view('GET')
def search(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """Search live files by name (``?q=``)."""
    items = hierarchy.search(storage, required(request.GET, 'q'))
    return JsonResponse({'files': [item.as_dict() for item in items]})


@tenant_view('GET')
def recycle_bin(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """List soft-deleted items."""
    items = hierarchy.recycle_bin(storage)
    return JsonResponse({'files': [item.as_dict() for item in items]})


@tenant_view('GET')
def quota(request: HttpRequest, storage: TenantStorage) -> JsonResponse:
    """Report storage used against the quota."""
    return JsonResponse(hierarchy.quota(storage).as_dict())

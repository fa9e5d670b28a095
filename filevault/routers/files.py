from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import FileResponse, StreamingResponse
from starlette.background import BackgroundTask

from ..deps import get_file_ops, get_principal
from ..schemas import ApiResponse
from ..security import Principal
from ..services.file_ops import FileOps

router = APIRouter(prefix='/api/files', tags=['files'])


def _content_disposition(filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


@router.get('')
def list_files(
    path: str = Query(default=''),
    principal: Principal = Depends(get_principal),
    ops: FileOps = Depends(get_file_ops),
):
    return ops.list_dir(principal, path)


@router.post('/upload')
def upload(
    path: str = Query(default=''),
    file: UploadFile = File(...),
    principal: Principal = Depends(get_principal),
    ops: FileOps = Depends(get_file_ops),
):
    stored = ops.upload(principal, path, file.filename or '', file.file)
    return ApiResponse(ok=True, message='Uploaded', data={'path': stored})


@router.get('/download')
def download(
    path: str = Query(...),
    principal: Principal = Depends(get_principal),
    ops: FileOps = Depends(get_file_ops),
):
    result = ops.open_download(principal, path)
    if result.path is not None:
        return FileResponse(result.path, media_type=result.content_type, filename=result.filename)

    headers = {
        'Content-Disposition': _content_disposition(result.filename),
        'Content-Length': str(result.size),
    }
    return StreamingResponse(
        ops.archiver.iter_chunks(result.archive),
        media_type=result.content_type,
        headers=headers,
        background=BackgroundTask(result.archive.close),
    )


@router.post('/mkdir')
def mkdir(
    path: str = Query(...),
    principal: Principal = Depends(get_principal),
    ops: FileOps = Depends(get_file_ops),
):
    ops.mkdir(principal, path)
    return ApiResponse(ok=True, message='Folder created')


@router.delete('')
def delete(
    path: str = Query(...),
    principal: Principal = Depends(get_principal),
    ops: FileOps = Depends(get_file_ops),
):
    ops.delete(principal, path)
    return ApiResponse(ok=True, message='Deleted')


@router.post('/rename')
def rename(
    old_path: str = Query(..., alias='oldPath'),
    new_name: str = Query(..., alias='newName'),
    principal: Principal = Depends(get_principal),
    ops: FileOps = Depends(get_file_ops),
):
    ops.rename(principal, old_path, new_name)
    return ApiResponse(ok=True, message='Renamed')


@router.post('/move')
def move(
    source: str = Query(...),
    target: str = Query(...),
    principal: Principal = Depends(get_principal),
    ops: FileOps = Depends(get_file_ops),
):
    ops.move(principal, source, target)
    return ApiResponse(ok=True, message='Moved')

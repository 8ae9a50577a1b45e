# workflow_catalog/utils/file_handlers.py
from pathlib import Path
from fastapi import UploadFile
from ..config import settings
from ..errors import ValidationError
from ..schemas.import_session import IntakeFile

def validate_file_type(filename: str) -> bool:
    """
    Validate that the file extension is one of the allowed workflow export extensions
    """
    extension = Path(filename or "").suffix.lower()
    return extension in settings.ALLOWED_EXTENSIONS

async def read_upload_file(upload_file: UploadFile) -> IntakeFile:
    """
    Read an uploaded workflow export into an intake file.
    The client-side relative path is not available for multipart uploads,
    so the file name doubles as the path.
    """
    raw = await upload_file.read()
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ValidationError(f"File '{upload_file.filename}' is not valid UTF-8 text") from e

    return IntakeFile(
        name=upload_file.filename,
        path=upload_file.filename,
        content=content,
        size=len(raw),
    )

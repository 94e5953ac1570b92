"""
TAR Archive utilities for archive uploads and image builds
"""

import tarfile
import io
import os
from typing import List, Optional


def create_tar_from_file(file_path: str, arcname: Optional[str] = None) -> bytes:
    """
    Create tar archive from a single file

    Args:
        file_path: Path to file to archive
        arcname: Name of file in archive (default: basename of file_path)

    Returns:
        Tar archive as bytes
    """
    if arcname is None:
        arcname = os.path.basename(file_path)

    tar_stream = io.BytesIO()

    with tarfile.open(fileobj=tar_stream, mode='w') as tar:
        tar.add(file_path, arcname=arcname)

    return tar_stream.getvalue()


def create_tar_from_directory(dir_path: str, arcname: Optional[str] = None) -> bytes:
    """
    Create tar archive from a directory

    Args:
        dir_path: Path to directory to archive
        arcname: Name of directory in archive (default: basename of dir_path);
            '.' puts the directory's contents at the archive root

    Returns:
        Tar archive as bytes
    """
    if arcname is None:
        arcname = os.path.basename(os.path.normpath(dir_path))

    tar_stream = io.BytesIO()

    with tarfile.open(fileobj=tar_stream, mode='w') as tar:
        if arcname == '.':
            for entry in sorted(os.listdir(dir_path)):
                tar.add(os.path.join(dir_path, entry), arcname=entry)
        else:
            tar.add(dir_path, arcname=arcname)

    return tar_stream.getvalue()


def create_tar(path: str, arcname: Optional[str] = None) -> bytes:
    """Archive a file or a directory"""
    if os.path.isdir(path):
        return create_tar_from_directory(path, arcname)
    if os.path.isfile(path):
        return create_tar_from_file(path, arcname)
    raise FileNotFoundError(f"Nothing to archive at {path}")


def list_tar_contents(tar_data: bytes) -> List[str]:
    """
    List contents of tar archive

    Args:
        tar_data: Tar archive as bytes

    Returns:
        List of filenames in archive
    """
    tar_stream = io.BytesIO(tar_data)

    with tarfile.open(fileobj=tar_stream, mode='r') as tar:
        return tar.getnames()

"""Tar stream decoding helpers for postgres-backuper."""

import io
import tarfile
from typing import Dict, Iterable, Union

from pgbackuper.errors import ArchiveError


class ArchiveService:
    """Decodes the tar stream produced by a container copy-out into memory."""

    def read_stream(self, stream: Union[bytes, Iterable[bytes]]) -> bytes:
        if isinstance(stream, (bytes, bytearray)):
            return bytes(stream)

        try:
            return b"".join(stream)
        except Exception as exc:
            raise ArchiveError(f"Failed to read archive stream: {exc}") from exc

    def decode_tar(self, stream: Union[bytes, Iterable[bytes]]) -> Dict[str, bytes]:
        data = self.read_stream(stream)
        if not data:
            return {}

        file_map: Dict[str, bytes] = {}
        try:
            with tarfile.open(fileobj=io.BytesIO(data), mode="r|") as tar:
                for member in tar:
                    if not member.isreg():
                        continue

                    file_obj = tar.extractfile(member)
                    if file_obj is None:
                        continue

                    name = member.name[1:] if member.name.startswith("/") else member.name
                    file_map[name] = file_obj.read()
        except tarfile.TarError as exc:
            raise ArchiveError(f"Invalid tar archive: {exc}") from exc

        return file_map

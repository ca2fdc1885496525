"""Streams the guide for a valid grant and settles the grant afterwards."""

import logging
from pathlib import Path
from typing import Iterator

from fastapi.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from guide_server.models.grant import GrantHandle, GrantOutcome
from guide_server.services.errors import ArtifactMissing
from guide_server.services.grant_store import GrantStore

CHUNK_SIZE = 64 * 1024


class GrantDownload(StreamingResponse):
    """PDF stream bound to one redemption.

    The grant is burned only when the whole file went out; a disconnect, a
    failed write or a cancelled request hands it back for another attempt.
    """

    def __init__(
        self,
        grants: GrantStore,
        handle: GrantHandle,
        path: Path,
        filename: str,
        chunk_size: int = CHUNK_SIZE,
    ):
        self._grants = grants
        self._handle = handle
        self._exhausted = False
        super().__init__(
            self._iter_file(path, chunk_size),
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    def _iter_file(self, path: Path, chunk_size: int) -> Iterator[bytes]:
        with open(path, "rb") as fh:
            while True:
                chunk = fh.read(chunk_size)
                if not chunk:
                    break
                yield chunk
        self._exhausted = True

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        completed = False
        try:
            await super().__call__(scope, receive, send)
            completed = self._exhausted
        finally:
            self._settle(completed)

    def _settle(self, completed: bool) -> None:
        token = self._handle.token[:8]
        if completed:
            self._grants.finalize(self._handle, GrantOutcome.COMPLETED)
            logging.info("PDF downloaded: Token %s...", token)
        else:
            self._grants.finalize(self._handle, GrantOutcome.INTERRUPTED)
            logging.warning("Download interrupted for token %s..., allowing retry", token)


class ArtifactDelivery:
    def __init__(self, grants: GrantStore, pdf_path: Path, download_name: str):
        self.grants = grants
        self.pdf_path = Path(pdf_path)
        self.download_name = download_name

    def open(self, token: str) -> GrantDownload:
        """Redeem ``token`` and return the response that streams the guide.

        Token errors propagate from :meth:`GrantStore.redeem`. A missing file
        releases the redemption so the buyer keeps a working link.
        """
        handle = self.grants.redeem(token)
        if not self.pdf_path.is_file():
            self.grants.finalize(handle, GrantOutcome.INTERRUPTED)
            logging.error("PDF file missing at runtime: %s", self.pdf_path)
            raise ArtifactMissing()
        return GrantDownload(self.grants, handle, self.pdf_path, self.download_name)

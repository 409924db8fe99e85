# app/infra/workspace.py
from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Literal, Optional

from app.config import settings

log = logging.getLogger(__name__)

CleanupPolicy = Literal["never", "on_success", "on_terminal"]


class TempWorkspace:
    """
    One scratch directory per run. Every file a run writes lives here.
    Removal is governed by the cleanup policy:
      never        leave everything on disk
      on_success   remove only after the last stage succeeded
      on_terminal  remove after success or failure

    The last progress edit references these files by path, so on a running
    loop removal is deferred by `cleanup_delay_s`.
    """
    def __init__(self, prefix: Optional[str] = None, root: Optional[str] = None,
                 cleanup: Optional[CleanupPolicy] = None, cleanup_delay_s: Optional[float] = None):
        base = root or settings.TEMP_ROOT or tempfile.gettempdir()
        Path(base).mkdir(parents=True, exist_ok=True)
        self.path = Path(tempfile.mkdtemp(prefix=prefix or settings.WORKSPACE_PREFIX, dir=base))
        self.cleanup = cleanup or settings.WORKSPACE_CLEANUP
        self.cleanup_delay_s = settings.WORKSPACE_CLEANUP_DELAY_S if cleanup_delay_s is None else cleanup_delay_s
        self._removal: Optional[asyncio.Task] = None

    def file(self, name: str) -> Path:
        safe = name.replace("/", "_").replace("\\", "_") or "board"
        return self.path / safe

    async def write_text(self, name: str, content: str) -> Path:
        target = self.file(name)
        await asyncio.to_thread(target.write_text, content, encoding="utf-8")
        return target

    def close(self, *, succeeded: bool) -> bool:
        """Apply the cleanup policy; True if the directory was removed or its removal is scheduled."""
        remove = self.cleanup == "on_terminal" or (self.cleanup == "on_success" and succeeded)
        if not remove:
            return False
        if self.cleanup_delay_s > 0:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            if loop is not None:
                self._removal = loop.create_task(self._remove_later(succeeded))
                return True
        self._remove(succeeded)
        return True

    async def _remove_later(self, succeeded: bool) -> None:
        await asyncio.sleep(self.cleanup_delay_s)
        await asyncio.to_thread(self._remove, succeeded)

    def _remove(self, succeeded: bool) -> None:
        shutil.rmtree(self.path, ignore_errors=True)
        log.info("board.workspace.removed", extra={"path": str(self.path), "succeeded": succeeded})

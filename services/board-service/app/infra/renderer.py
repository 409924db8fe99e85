# app/infra/renderer.py
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Literal, Optional

from app.config import settings
from app.errors import RenderError

log = logging.getLogger(__name__)

OutputFormat = Literal["md", "markdown", "svg", "png", "pdf"]
OUTPUT_FORMATS = ("md", "markdown", "svg", "png", "pdf")


class MermaidRenderer:
    """
    Thin wrapper over the mermaid-cli binary (`mmdc`).
    Renders a .mmd file into `output_format` with a headless browser.
    """
    def __init__(
        self,
        binary: Optional[str] = None,
        output_format: Optional[OutputFormat] = None,
        headless: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ):
        self.binary = binary or settings.MMDC_BIN
        self.output_format = output_format or settings.RENDER_FORMAT
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"unsupported output format: {self.output_format}")
        self.headless = headless or settings.PUPPETEER_HEADLESS
        # None means wait as long as the renderer takes
        self.timeout_s = timeout_s if timeout_s is not None else settings.RENDER_TIMEOUT_S

    def output_path(self, input_path: Path) -> Path:
        return input_path.with_suffix(f".{self.output_format}")

    async def _puppeteer_config(self, input_path: Path) -> Path:
        cfg = input_path.parent / "puppeteer-config.json"
        await asyncio.to_thread(cfg.write_text, json.dumps({"headless": self.headless}), encoding="utf-8")
        return cfg

    def build_args(self, input_path: Path, output_path: Path, puppeteer_config: Path) -> List[str]:
        return [
            self.binary,
            "-i", str(input_path),
            "-o", str(output_path),
            "-e", self.output_format,
            "-p", str(puppeteer_config),
        ]

    async def render(self, input_path: Path, output_path: Optional[Path] = None) -> Path:
        output_path = output_path or self.output_path(input_path)
        args = self.build_args(input_path, output_path, await self._puppeteer_config(input_path))
        log.info("board.render.start", extra={"argv": args})
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RenderError(f"could not start {self.binary}: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_s)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise RenderError(f"{self.binary} timed out after {self.timeout_s}s") from e

        err_text = (stderr or b"").decode("utf-8", errors="replace").strip()
        if proc.returncode != 0:
            raise RenderError(
                f"{self.binary} exited with {proc.returncode}",
                returncode=proc.returncode,
                stderr=err_text,
            )
        if not output_path.exists():
            raise RenderError(f"{self.binary} reported success but wrote no {output_path.name}", stderr=err_text)
        return output_path

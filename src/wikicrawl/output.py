"""Writers for crawl results."""

import json
from pathlib import Path
from typing import TextIO

from .models import CrawlResult, Page


class StreamingOutputWriter:
    """Writes pages to JSONL format one at a time."""

    def __init__(
        self,
        output_path: str | Path,
        include_content: bool = True,
    ):
        self.output_path = Path(output_path)
        self.include_content = include_content
        self._file: TextIO | None = None
        self._count = 0

    def __enter__(self) -> "StreamingOutputWriter":
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.output_path, "w", encoding="utf-8")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._file is not None:
            self._file.close()
            self._file = None

    def write_one(self, page: Page):
        """Write a single page to the output file."""
        if self._file is None:
            raise RuntimeError("StreamingOutputWriter must be used as context manager")

        output = page.to_dict()
        if not self.include_content:
            del output["content"]

        self._file.write(json.dumps(output, ensure_ascii=False) + "\n")
        self._file.flush()
        self._count += 1

    @property
    def count(self) -> int:
        """Number of pages written."""
        return self._count


def write_result(result: CrawlResult, output_path: str | Path, include_content: bool = True) -> int:
    """Write a result to disk: markdown for aggregate mode, JSONL for pages.

    ``include_content=False`` leaves page bodies out of JSONL output.
    Returns the number of pages written.
    """
    path = Path(output_path)
    if result.mode == "aggregate":
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(result.content or "", encoding="utf-8")
        return result.page_count

    with StreamingOutputWriter(path, include_content=include_content) as writer:
        for page in result.pages or []:
            writer.write_one(page)
    return writer.count

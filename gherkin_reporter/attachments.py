"""Attachment collection for steps, hooks and scenarios."""

from __future__ import annotations

import mimetypes
import uuid
from typing import Union

from .errors import ScenarioAborted
from .models import Attachment, FixtureRecord, ScenarioRecord, StepRecord
from .sink import ResultSink

AttachmentTarget = Union[StepRecord, FixtureRecord, ScenarioRecord]

# mimetypes knows these poorly or not at all on some platforms.
_EXTENSIONS = {
    "text/plain": ".txt",
    "text/tab-separated-values": ".tsv",
    "application/json": ".json",
    "image/png": ".png",
}


def extension_for(mime_type: str) -> str:
    if mime_type in _EXTENSIONS:
        return _EXTENSIONS[mime_type]
    return mimetypes.guess_extension(mime_type, strict=False) or ""


class AttachmentCollector:
    def __init__(self, sink: ResultSink) -> None:
        self._sink = sink

    def attach(
        self,
        target: AttachmentTarget,
        name: str,
        mime_type: str,
        content: Union[bytes, str],
    ) -> str:
        """Store ``content`` through the sink and reference it from ``target``."""

        source = f"{uuid.uuid4()}-attachment{extension_for(mime_type)}"
        data = content.encode("utf-8") if isinstance(content, str) else content
        try:
            self._sink.write_attachment(source, data)
        except Exception as exc:
            raise ScenarioAborted(f"Failed to store attachment '{name}': {exc}") from exc
        target.attachments.append(Attachment(name=name, type=mime_type, source=source))
        return source

from __future__ import annotations

import json
import os
import socket
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from awx_ee_pipeline.core import to_jsonable, utc_now_iso

from .types import Event


class EventType(str, Enum):
    RUN_ENV = "run.env"
    RUN_START = "run.start"
    RUN_FINISH = "run.finish"

    STAGE_START = "stage.start"
    STAGE_WARN = "stage.warn"
    STAGE_METRICS = "stage.metrics"
    STAGE_SUCCESS = "stage.success"
    STAGE_FAILED = "stage.failed"

    ARTIFACT_WRITTEN = "artifact.written"

    VALIDATE_TOOL = "validate.tool"

    BUILD_START = "build.start"
    BUILD_FINISH = "build.finish"

    CHECK_FINISH = "check.finish"

    SCAN_START = "scan.start"
    SCAN_FALLBACK = "scan.fallback"
    SCAN_FINISH = "scan.finish"

    TAGS_COMPUTED = "tags.computed"

    PUBLISH_LOGIN = "publish.login"
    PUBLISH_PUSH = "publish.push"
    PUBLISH_FINISH = "publish.finish"

    VERIFY_FINISH = "verify.finish"


class EventSink:
    """Append-only JSONL event log for one run."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        self.emit(
            Event(
                type=EventType.RUN_ENV.value,
                ts_utc=utc_now_iso(),
                run_id="__init__",
                data={
                    "hostname": socket.gethostname(),
                    "pid": os.getpid(),
                    "cwd": str(Path.cwd()),
                },
            )
        )

    def emit(self, event: Event) -> None:
        line = json.dumps(to_jsonable(asdict(event)), ensure_ascii=False)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line)
            f.write("\n")

    def read(self) -> list[dict[str, Any]]:
        with self.path.open("r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]


def make_event(
    *,
    event_type: EventType | str,
    run_id: str,
    stage: Optional[str] = None,
    **data: Any,
) -> Event:
    type_value = (
        event_type.value if isinstance(event_type, EventType) else str(event_type)
    )
    return Event(
        type=type_value,
        ts_utc=utc_now_iso(),
        run_id=run_id,
        stage=stage,
        data=dict(data),
    )

import json
from pathlib import Path
from typing import Any

from dm_harvest.serialize.flat_rows import to_csv
from dm_harvest.serialize.hierarchical import (
    harvest_to_hierarchical,
    summaries_to_hierarchical,
)
from dm_harvest.types.harvest_state import HarvestResult
from dm_harvest.utils.logger import logger

DEFAULT_JSON_PATH = "twitter_messages.json"
DEFAULT_CSV_PATH = "twitter_messages.csv"


def write_json(data: Any, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def write_csv(text: str, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)
    return path


def write_outputs(
    result: HarvestResult,
    json_path: str | Path = DEFAULT_JSON_PATH,
    csv_path: str | Path = DEFAULT_CSV_PATH,
    summary_only: bool = False,
) -> tuple[Path, Path]:
    """Write the harvest as pretty-printed JSON plus a per-message CSV.

    Summary-only runs write conversation summaries to JSON; their CSV holds
    only the header since no messages were read. Full-history JSON keeps
    conversations whose messages could not be read, with no messages.
    """
    if summary_only:
        data = summaries_to_hierarchical(result.summaries)
    else:
        data = harvest_to_hierarchical(result.summaries, result.details)

    written_json = write_json(data, json_path)
    logger.success(f"Saved {len(data)} conversations to {written_json}")

    written_csv = write_csv(to_csv(result.details), csv_path)
    logger.success(f"Saved message rows to {written_csv}")
    return written_json, written_csv

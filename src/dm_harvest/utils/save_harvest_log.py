import json
import os
from datetime import datetime
from typing import Any

from dm_harvest.types.harvest_config import HarvestConfig
from dm_harvest.utils.slugify import slugify

DEBUG_FOLDER = "debug"
DEBUG_FILENAME_FORMAT = "dm_harvest_debug_{stamp}.jsonl"


def save_harvest_log(config: HarvestConfig, log_type: str, data: dict[str, Any]) -> None:
    """Append one debug entry to a JSONL file.

    Args:
        config: Harvest configuration; nothing is written unless `debug` is set
        log_type: Type of debug data (pass, admitted, detail, reveal, stop)
        data: The data to log
    """
    if not config.debug:
        return

    # One file per run, named after the time of the first entry
    if not config.debug_file:
        os.makedirs(DEBUG_FOLDER, exist_ok=True)
        stamp = slugify(datetime.now().isoformat(timespec="seconds"))
        config.debug_file = os.path.join(DEBUG_FOLDER, DEBUG_FILENAME_FORMAT.format(stamp=stamp))

    log_entry = {
        "timestamp": datetime.now().isoformat(),
        "type": log_type,
        "data": data,
    }

    with open(config.debug_file, "a", encoding="utf-8") as f:
        f.write(json.dumps(log_entry, default=str) + "\n")

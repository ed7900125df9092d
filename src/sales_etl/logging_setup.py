# src/sales_etl/logging_setup.py
import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from sales_etl.config import DEFAULT_LOG_CONFIG


def load_logging_config(path: Union[str, Path, None] = None) -> Dict[str, Any]:
    """Load a dictConfig mapping from a YAML file."""
    with open(path or DEFAULT_LOG_CONFIG, "r") as f:
        return yaml.safe_load(f)


def configure_logging(
    log_level: str = "INFO", config_path: Optional[Union[str, Path]] = None
) -> None:
    """
    Configure logging from YAML, then apply the requested root level.

    Falls back to basicConfig when the YAML file is missing so a bad
    LOG_CONFIG never prevents the pipeline from starting.
    """
    path = Path(config_path or DEFAULT_LOG_CONFIG)
    if path.exists():
        logging.config.dictConfig(load_logging_config(path))
    else:
        logging.basicConfig(
            format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )
        logging.getLogger(__name__).warning(
            "Logging config %s not found, using defaults", path
        )

    logging.getLogger().setLevel(log_level.upper())

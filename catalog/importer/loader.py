import json
import logging
from pathlib import Path
from typing import Any, Optional

from catalog.errors import ImportConfigError

logger = logging.getLogger(__name__)


def load_feed(path: Optional[str], required: bool) -> list[Any]:
    """
    JSON 배열 피드를 읽습니다.

    상품 피드(required=True)는 없거나 깨지면 ImportConfigError,
    이미지 피드(required=False)는 경고 후 빈 목록으로 계속 진행합니다.
    """
    def _fail(message: str) -> list[Any]:
        if required:
            raise ImportConfigError(message, path=path)
        logger.warning(f"{message}, continuing without it")
        return []

    if not path:
        return _fail("Feed path not provided")

    feed_path = Path(path)
    if not feed_path.exists():
        return _fail(f"Feed file not found: {path}")

    try:
        data = json.loads(feed_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        return _fail(f"Failed to load feed file {path}: {e}")

    if not isinstance(data, list):
        return _fail(f"Feed file must contain a JSON array: {path}")

    return data

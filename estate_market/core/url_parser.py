import logging
from typing import List

logger = logging.getLogger(__name__)


class URLParser:
    def parse_url_list(self, raw_value: str, name: str) -> List[str]:
        items = [v.strip() for v in (raw_value or "").split(",") if v.strip()]

        valid_items = [
            v for v in items if v.startswith("http://") or v.startswith("https://")
        ]

        if items and not valid_items:
            logger.warning("No valid URLs found in %s", name)

        return valid_items

    def with_query(self, base_url: str, query: str) -> str:
        separator = "&" if "?" in base_url else "?"
        return f"{base_url}{separator}{query}"


parser = URLParser()

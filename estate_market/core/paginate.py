import math

DEFAULT_LIMIT = 12
MAX_LIMIT = 100


class PaginatePage:
    def clamp(self, page, limit, default_limit: int = DEFAULT_LIMIT):
        page = self._as_int(page, 1)
        limit = self._as_int(limit, default_limit)
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_LIMIT)
        return page, limit

    def offset(self, page: int, limit: int) -> int:
        return (page - 1) * limit

    def meta(self, total: int, page: int, limit: int) -> dict:
        total_pages = math.ceil(total / limit) if limit else 0
        return {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": total_pages,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        }

    @staticmethod
    def _as_int(value, default: int) -> int:
        if value is None or value == "":
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

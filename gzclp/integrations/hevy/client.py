from __future__ import annotations

import httpx
from loguru import logger

from gzclp.config.settings import HEVY_MAX_PAGE_SIZE, settings
from gzclp.domain.enums import WeightUnit
from gzclp.domain.models import WorkoutLog
from gzclp.integrations.hevy.schemas import HevyWorkout, HevyWorkoutPage, map_hevy_workout


class HevyApiError(Exception):
    """Base exception for Hevy API failures."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class HevyAuthError(HevyApiError):
    """Raised when the API key is missing or rejected."""


class HevyRateLimitError(HevyApiError):
    """Raised when Hevy answers 429."""


class HevyTimeoutError(HevyApiError):
    """Raised when a request times out."""


class HevyClient:
    """Thin Hevy API client.

    - Pagination controlled by the caller (fetch_all_workouts is a convenience loop)
    - No retries
    - No sleeping
    """

    def __init__(
        self,
        api_key: str,
        *,
        unit: WeightUnit = WeightUnit.KG,
        base_url: str | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        if not api_key:
            raise HevyAuthError("Hevy API key is not set (HEVY_API_KEY)")
        self.unit = unit
        self.page_size = min(page_size or settings.hevy_page_size, HEVY_MAX_PAGE_SIZE)
        self._client = httpx.Client(
            base_url=base_url or settings.hevy_base_url,
            headers={"api-key": api_key, "accept": "application/json"},
            timeout=timeout or settings.hevy_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HevyClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _get(self, path: str, params: dict[str, int] | None = None) -> httpx.Response:
        try:
            resp = self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise HevyTimeoutError(f"Hevy request to {path} timed out") from e
        except httpx.HTTPError as e:
            raise HevyApiError(f"Hevy request to {path} failed: {e}") from e

        if resp.status_code == 401:
            raise HevyAuthError("Hevy rejected the API key", status_code=401)
        if resp.status_code == 429:
            raise HevyRateLimitError("Hevy rate limit exceeded", status_code=429)
        return resp

    def fetch_workout_page(self, page: int = 1, page_size: int | None = None) -> HevyWorkoutPage:
        """Fetch ONE page of workouts, most recent first.

        Pages past the end come back empty.
        """
        size = min(page_size or self.page_size, HEVY_MAX_PAGE_SIZE)
        resp = self._get("/workouts", params={"page": page, "pageSize": size})

        if resp.status_code == 404:
            logger.debug(f"[HEVY] Page {page} not found, treating as end of workouts")
            return HevyWorkoutPage(page=page, page_count=page - 1, workouts=[])
        if resp.is_error:
            raise HevyApiError(f"Hevy returned {resp.status_code} for page {page}", status_code=resp.status_code)

        payload = resp.json()
        workouts = [HevyWorkout(**raw, raw=raw) for raw in payload.get("workouts", [])]
        return HevyWorkoutPage(page=payload.get("page", page), page_count=payload.get("page_count", 0), workouts=workouts)

    def fetch_workouts(self, page: int = 1, page_size: int | None = None) -> list[WorkoutLog]:
        hevy_page = self.fetch_workout_page(page, page_size)
        return [map_hevy_workout(w, self.unit) for w in hevy_page.workouts]

    def fetch_all_workouts(self, max_pages: int | None = None) -> list[WorkoutLog]:
        """Walk pages until the last one (or max_pages) is reached."""
        workouts: list[WorkoutLog] = []
        page = 1
        while True:
            hevy_page = self.fetch_workout_page(page)
            workouts.extend(map_hevy_workout(w, self.unit) for w in hevy_page.workouts)
            if not hevy_page.workouts or page >= hevy_page.page_count:
                break
            if max_pages is not None and page >= max_pages:
                break
            page += 1
        logger.info(f"[HEVY] Fetched {len(workouts)} workouts over {page} pages")
        return workouts

    def fetch_workout_count(self) -> int:
        resp = self._get("/workouts/count")
        if resp.is_error:
            raise HevyApiError(f"Hevy returned {resp.status_code} for workout count", status_code=resp.status_code)
        return int(resp.json().get("workout_count", 0))

"""Google Custom Search 이미지 검색 클라이언트"""

import logging
from typing import List, Optional

import httpx
from tenacity import RetryCallState, retry, retry_if_exception, wait_exponential

from catalog.errors import EnrichmentError
from catalog.settings import Settings, settings

logger = logging.getLogger(__name__)

MAX_PER_REQUEST = 10  # Google API 제한
MAX_SUGGEST_COUNT = 30
MAX_START_INDEX = 91  # Custom Search 는 100번째 결과까지만 제공


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TimeoutException):
        return False
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, EnrichmentError) and exc.recoverable


def _stop_after_configured_attempts(retry_state: RetryCallState) -> bool:
    # args[0] 은 클라이언트 인스턴스. 주입된 config 의 재시도 횟수를 따른다
    return retry_state.attempt_number >= retry_state.args[0].config.enrichment_retry_count


class ImageSearchClient:
    def __init__(self, config: Settings = settings, client: Optional[httpx.Client] = None):
        self.config = config
        self.client = client or httpx.Client(timeout=config.http_timeout_seconds)

    @retry(
        stop=_stop_after_configured_attempts,
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"이미지 검색 재시도 중... ({retry_state.attempt_number}회째): {retry_state.outcome.exception()}"
        ),
    )
    def search_images(self, query: str, num: int = MAX_PER_REQUEST, start: int = 1) -> List[str]:
        """
        이미지 URL 한 페이지를 검색합니다.

        Args:
            query: 검색 쿼리 (제외어 포함)
            num: 요청 개수 (1~10 으로 보정)
            start: 시작 인덱스 (1-based, 최소 1)

        Returns:
            http/https 이미지 URL 목록
        """
        if not self.config.image_search_configured():
            raise EnrichmentError(
                "Google Custom Search API credentials not configured (GOOGLE_CLOUD_API_KEY, CUSTOM_SEARCH_ENGINE_ID)",
                provider="google",
                recoverable=False,
            )

        params = {
            "key": self.config.google_cloud_api_key,
            "cx": self.config.custom_search_engine_id,
            "q": query,
            "searchType": "image",
            "num": min(max(1, num), MAX_PER_REQUEST),
            "start": max(1, start),
            "safe": "active",
            "imgType": "photo",
            "imgSize": "large",
            "imgColorType": "color",
        }
        if self.config.image_search_rights:
            params["rights"] = self.config.image_search_rights

        try:
            response = self.client.get(self.config.google_search_url, params=params, headers={"Accept": "application/json"})
        except httpx.TimeoutException as e:
            raise EnrichmentError(
                f"Image search request timed out after {self.config.http_timeout_seconds:g} seconds",
                provider="google",
            ) from e

        if response.status_code >= 400:
            raise EnrichmentError(
                f"Google Custom Search API error: {response.status_code} - {response.text[:200]}",
                provider="google",
                status_code=response.status_code,
                recoverable=response.status_code == 429 or response.status_code >= 500,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise EnrichmentError(
                f"Google Custom Search API returned invalid JSON: {response.text[:200]}",
                provider="google",
                status_code=response.status_code,
                recoverable=False,
            ) from e
        if data.get("error"):
            raise EnrichmentError(
                f"Google Custom Search API error: {data['error'].get('message', 'Unknown error')}",
                provider="google",
                recoverable=False,
            )

        urls: List[str] = []
        for item in data.get("items") or []:
            image = item.get("image") or {}
            url = item.get("link") or image.get("thumbnailLink") or image.get("contextLink")
            if isinstance(url, str) and url.startswith(("http://", "https://")):
                urls.append(url)
        return urls

    def suggest_images(self, query: str, count: int = 10, start: int = 1) -> List[str]:
        """count 개가 모일 때까지 페이지를 넘기며 중복 없는 URL 을 모읍니다. 짧은 페이지가 오면 중단."""
        count = min(max(1, count), MAX_SUGGEST_COUNT)
        current_start = max(1, start)
        seen: set[str] = set()
        urls: List[str] = []

        while len(urls) < count and current_start <= MAX_START_INDEX:
            num = min(MAX_PER_REQUEST, count - len(urls))
            page = self.search_images(query, num=num, start=current_start)
            for url in page:
                if url not in seen:
                    seen.add(url)
                    urls.append(url)
                    if len(urls) >= count:
                        break
            if len(page) < num:
                break
            current_start += num

        return urls[:count]

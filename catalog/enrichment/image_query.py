"""
이미지 검색용 영어 쿼리 생성기

상품 제목(한국어/몽골어/러시아어 혼합)을 Google Images 에서 제품 사진을 찾기 좋은
짧은 영어 쿼리로 변환합니다. Gemini 가 설정되어 있지 않거나 어떤 이유로든 실패하면
결정적(deterministic) 로컬 fallback 으로 degrade 합니다. 이 모듈은 예외를 밖으로 던지지 않습니다.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from tenacity import RetryCallState, retry, retry_if_exception, wait_exponential

from catalog.errors import EnrichmentError
from catalog.settings import Settings, settings

logger = logging.getLogger(__name__)

NEGATIVE_TERMS = "-json -schema -code -programming -api -database -tutorial -diagram -screenshot"
MAX_QUERY_LENGTH = 120

KOREAN_PROMO_TERMS = (
    "올영픽", "리뉴얼", "기획", "더블", "세트", "증정",
    "1월", "2월", "3월", "4월", "5월", "6월", "7월", "8월", "9월", "10월", "11월", "12월",
)
BAD_QUERY_STARTS = (
    "here", "this", "json", "response", "result", "query", "output", "the query is", "query:", "result:",
)
PRODUCT_KEYWORDS = ("ml", "g", "oz", "pack", "set", "toner", "serum", "cream", "lotion", "product", "item")

_NON_LATIN = re.compile("[\u0400-\u04FF\uAC00-\uD7AF\u4E00-\u9FFF\u3040-\u309F\u30A0-\u30FF\u0600-\u06FF]")
_WRAPPER_PHRASES = [
    re.compile(r"^Here is (the )?", re.I),
    re.compile(r"^JSON:", re.I),
    re.compile(r"^Response:", re.I),
    re.compile(r"^Output:", re.I),
    re.compile(r"^Result:", re.I),
    re.compile(r"^The query is:", re.I),
    re.compile(r"^Query:", re.I),
]

QUERY_PROMPT = """Convert the following product information into a SHORT, clean English query for Google Images product photo search.

{details}

Requirements:
- Output 5-12 words maximum (ideally 6-8 words)
- English only (translate from Korean/Mongolian/Russian if needed)
- Keep ONLY: brand name, key product line/name, product type, size (ml/g/oz), pack count if truly relevant
- Remove ALL promotional text: brackets, dates, campaign words, store promos
- Remove Korean terms: "올영픽", "리뉴얼", "기획", "더블", "세트", "증정", "1월", "2월", etc.
- Remove: shipping, sale, discount, authentic, original, free, promo, campaign, event
- Remove: store names, platform names (Gmarket, Olive Young, etc.)
- Focus on what the product IS, not marketing descriptions

Example transformations:
- "[1월 올영픽/리뉴얼] 아누아 어성초 77 히알루론 수분 진정 토너 250ml 더블 기획" -> "anua heartleaf 77 soothing toner 250ml"
- "SK-II Facial Treatment Essence 230ml Authentic Original" -> "sk2 facial treatment essence 230ml"
- "Laneige Water Bank Hyaluronic Serum 50ml 2-Pack Set" -> "laneige water bank hyaluronic serum 50ml\""""

TRANSLATE_PROMPT = """Convert this product title (KR/MN/RU/mixed) into a short English Google Images query for product photos. Reply with ONE LINE only, no explanations.

Product: {text}"""


@dataclass
class ImageQuery:
    query_base: str  # UI 표시용
    query_final: str  # 검색용 (제외어 포함)
    method: str  # gemini | gemini-translate | fallback
    reason: Optional[str] = None


# ==================== 텍스트 유틸 ====================

def clean_title(title: str) -> str:
    """괄호 내용, 한국어 프로모션 문구, 특수문자 제거"""
    if not title:
        return ""
    cleaned = title.strip()
    cleaned = re.sub(r"\[[^\]]*\]", "", cleaned)
    cleaned = re.sub(r"\([^)]*\)", "", cleaned)
    for promo in KOREAN_PROMO_TERMS:
        cleaned = cleaned.replace(promo, "")
    cleaned = re.sub(r"[^A-Za-z0-9_\s\-./]", " ", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


def fallback_query(title: Optional[str], brand: Optional[str]) -> str:
    return " ".join(part for part in (brand, clean_title(title or "")) if part).strip() or "product"


def with_negative_terms(query: str) -> str:
    return f"{query} {NEGATIVE_TERMS}".strip()


def contains_non_latin(text: str) -> bool:
    return bool(_NON_LATIN.search(text))


def is_bad_query(query: Any, brand: Optional[str] = None) -> bool:
    if not query or not isinstance(query, str):
        return True
    trimmed = query.strip().lower()
    if len(trimmed) < 8:
        return True
    if any(trimmed == bad or trimmed.startswith(bad + " ") for bad in BAD_QUERY_STARTS):
        return True
    if len(re.findall(r"[a-z0-9]", trimmed)) < 5:
        return True
    if brand and brand.strip():
        has_brand = brand.lower() in trimmed
        has_keywords = any(kw in trimmed for kw in PRODUCT_KEYWORDS)
        if not has_brand and not has_keywords:
            return True
    return False


def extract_json(text: Any) -> Optional[Any]:
    """모델 응답에서 JSON 을 추출합니다 (그대로 → 코드펜스 → {..} → [..] 순서)."""
    if not text or not isinstance(text, str):
        return None
    trimmed = text.strip()

    candidates = [trimmed]
    fence = re.search(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", trimmed, re.I)
    if fence:
        candidates.append(fence.group(1))
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        first, last = trimmed.find(open_ch), trimmed.rfind(close_ch)
        if first != -1 and last > first:
            candidates.append(trimmed[first:last + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    return None


def extract_query_from_text(text: str) -> str:
    if not text:
        return ""
    cleaned = text.strip()
    for pattern in _WRAPPER_PHRASES:
        cleaned = pattern.sub("", cleaned).strip()
    cleaned = re.sub(r"```(?:json)?", "", cleaned, flags=re.I).strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in ("'", '"'):
        cleaned = cleaned[1:-1].strip()

    lines = [line.strip() for line in cleaned.split("\n") if line.strip()]
    if lines:
        longest = max(lines, key=len)
        if re.search(r"[a-zA-Z0-9]", longest):
            return longest
    return cleaned


# ==================== Gemini 클라이언트 ====================

def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, EnrichmentError) and exc.recoverable


def _stop_after_configured_attempts(retry_state: RetryCallState) -> bool:
    # args[0] 은 클라이언트 인스턴스. 주입된 config 의 재시도 횟수를 따른다
    return retry_state.attempt_number >= retry_state.args[0].config.enrichment_retry_count


class GeminiClient:
    def __init__(self, config: Settings = settings, client: Optional[httpx.Client] = None):
        self.config = config
        self.client = client or httpx.Client(timeout=config.http_timeout_seconds)

    @property
    def url(self) -> str:
        return f"{self.config.gemini_api_base_url}/models/{self.config.gemini_model}:generateContent"

    @retry(
        stop=_stop_after_configured_attempts,
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"Gemini 재시도 중... ({retry_state.attempt_number}회째): {retry_state.outcome.exception()}"
        ),
    )
    def generate(self, body: dict) -> str:
        response = self.client.post(self.url, params={"key": self.config.gemini_api_key}, json=body)
        if response.status_code >= 400:
            raise EnrichmentError(
                f"Gemini API error: {response.status_code} - {response.text[:200]}",
                provider="gemini",
                status_code=response.status_code,
                recoverable=response.status_code == 429 or response.status_code >= 500,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise EnrichmentError(
                f"Gemini API returned invalid JSON: {response.text[:200]}",
                provider="gemini",
                status_code=response.status_code,
                recoverable=False,
            ) from e
        if data.get("error"):
            raise EnrichmentError(
                f"Gemini API error: {data['error'].get('message', 'Unknown error')}",
                provider="gemini",
                recoverable=False,
            )
        try:
            return (data["candidates"][0]["content"]["parts"][0].get("text") or "").strip()
        except (KeyError, IndexError, TypeError):
            return ""

    def build_query(self, details: str) -> str:
        return self.generate({
            "contents": [{"parts": [{"text": QUERY_PROMPT.format(details=details)}]}],
            "systemInstruction": {
                "parts": [{"text": "Return ONLY valid JSON. No markdown, no explanations. "
                                   "Output must be valid JSON object with queryEn and optional reason fields."}]
            },
            "generationConfig": {
                "temperature": 0,
                "maxOutputTokens": 80,
                "responseMimeType": "application/json",
            },
        })

    def translate(self, text: str) -> str:
        """한 줄 번역. 실패하면 빈 문자열."""
        try:
            return self.generate({
                "contents": [{"parts": [{"text": TRANSLATE_PROMPT.format(text=text)}]}],
                "generationConfig": {"temperature": 0, "maxOutputTokens": 40},
            })
        except (EnrichmentError, httpx.HTTPError, ValueError) as e:
            logger.debug(f"Gemini translate failed: {e}")
            return ""


# ==================== 진입점 ====================

def build_english_image_query(
    title: Optional[str] = None,
    brand: Optional[str] = None,
    store: Optional[str] = None,
    category: Optional[str] = None,
    config: Settings = settings,
    client: Optional[GeminiClient] = None,
) -> ImageQuery:
    """
    상품 정보로 영어 이미지 검색 쿼리를 만듭니다.

    Args:
        title: 상품 제목 (원문 우선)
        brand: 브랜드
        store: 소스 스토어
        category: 카테고리
        config: 설정 (기본: 전역 settings)
        client: Gemini 클라이언트 (테스트 주입용)

    Returns:
        ImageQuery. Gemini 실패 시에도 항상 fallback 쿼리를 반환합니다.
    """
    fallback = fallback_query(title, brand)

    if not config.image_search_enabled or not config.gemini_api_key:
        return ImageQuery(fallback, with_negative_terms(fallback), "fallback", "Gemini API not configured")

    gemini = client or GeminiClient(config)
    details = "\n".join(
        f'{label}: "{value}"'
        for label, value in (("Product title", title), ("Brand", brand), ("Store", store), ("Category", category))
        if value
    )

    try:
        text = gemini.build_query(details)
    except (EnrichmentError, httpx.HTTPError, ValueError) as e:
        logger.warning(f"Gemini query build failed, using fallback: {e}")
        return ImageQuery(fallback, with_negative_terms(fallback), "fallback", str(e) or "Gemini API unavailable")

    if not text:
        return ImageQuery(fallback, with_negative_terms(fallback), "fallback", "Gemini API returned empty response")

    parsed = extract_json(text)
    used_json = isinstance(parsed, dict) and isinstance(parsed.get("queryEn"), str) and parsed["queryEn"].strip() != ""

    query = ""
    reason: Optional[str] = None
    if used_json:
        query = parsed["queryEn"].strip()
        reason = parsed.get("reason")
    else:
        extracted = extract_query_from_text(text)
        if extracted and contains_non_latin(extracted):
            query = gemini.translate(extracted).strip()
            reason = "Translated from non-English text" if query else None
        elif extracted:
            query = extracted
            reason = "Extracted from raw response"
        if not query:
            logger.warning(f"Gemini JSON parse failed, fallback. Raw(head): {text[:120]}")

    if is_bad_query(query, brand):
        if title:
            second = gemini.translate(title).strip()
            if second and not is_bad_query(second, brand):
                query = second
                used_json = False
                reason = "Second Gemini call (one-line)"
        if is_bad_query(query, brand):
            query = fallback
            used_json = False
            reason = "Deterministic fallback"

    query = re.sub(r"\s+", " ", query.strip())[:MAX_QUERY_LENGTH]

    if used_json and not is_bad_query(query, brand):
        method = "gemini"
    elif query != fallback and not is_bad_query(query, brand):
        method = "gemini-translate"
    else:
        method = "fallback"

    return ImageQuery(query, with_negative_terms(query), method, reason)

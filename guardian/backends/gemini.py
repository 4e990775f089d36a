"""Gemini reasoning backend — Google generateContent REST API via httpx."""

from __future__ import annotations

import logging

import httpx

from guardian.backends.base import classify_verdict
from guardian.config import settings
from guardian.errors import RemoteServiceError
from guardian.models.report import AuditReport, GroundingReference
from guardian.models.source import Corpus

logger = logging.getLogger(__name__)

NO_AUDIT_RESPONSE = "No response generated."
NO_ANSWER_RESPONSE = "답변을 생성할 수 없습니다."

AUDIT_PROMPT = """\
You are a high-precision Compliance Auditor.
Analyze the [Scenario] against the [Regulation Text] and [Visual Layout Images].

[Scenario]:
{scenario}

[Regulation Text]:
{regulation_text}

CRITICAL INSTRUCTIONS (SPEED & STRUCTURE):
1. BE CONCISE: Provide your analysis within 10 seconds. Focus on the core mapping.
2. TABLE USAGE: ALWAYS summarize the mapping between scenario and clauses in a Markdown Table for clarity.
3. HIGHLIGHTING: Use <span class="highlight-red">text</span> for violation triggers.
4. BREADCRUMB STYLE: When referencing clauses, follow a hierarchical path structure.
   Example: [카테고리] > [하위 항목] > [세부 조항]
   Specifically for 'Approval Authority Regulations (전결규정)', follow this style:
   '콘텐츠 > 1. 콘텐츠 계약 > 신규계약'

Output Format:
### ⚖️ 판정 결과: [위반 / 적합 / 판단 불가]
### 📜 관련 근거 조항
> (Hierarchical Path Example: 콘텐츠 > 1.콘텐츠 계약 > 신규계약)
> (규정 원문 조항 인용)
### 🔍 상세 분석
(사안-조항 매핑 테이블 포함)
### 💡 조치 권고 사항
- (핵심 조치 사항)\
"""

QUESTION_PROMPT = """\
You are a helpful Regulation Expert. Explain the [Question] based strictly on the [Regulation].

[Question]: {question}
[Regulation Text]: {regulation_text}

INSTRUCTIONS (SPEED & STRUCTURE):
- If the source has a table, RECREATE it as a Markdown Table.
- Be direct and professional. Target <10s response time.
- BREADCRUMB STYLE: Use hierarchical path for references (e.g., '콘텐츠 > 1.콘텐츠 계약 > 신규계약').

Output Format:
### ℹ️ 질문 해설: [요약]
### 📖 상세 근거 및 테이블 해설
(테이블 포함 상세 설명)\
"""


def split_data_uri(image: str, default_mime: str = "image/png") -> tuple[str, str]:
    """Return (mime_type, base64_payload) for a data URI or a bare base64 string."""
    if image.startswith("data:") and "," in image:
        header, payload = image.split(",", 1)
        mime_type = header[len("data:"):].split(";", 1)[0] or default_mime
        return mime_type, payload
    return default_mime, image


def inline_part(image: str) -> dict:
    mime_type, data = split_data_uri(image)
    return {"inline_data": {"mime_type": mime_type, "data": data}}


class GeminiBackend:
    """Reasoning backend using Google's Gemini models."""

    name: str = "Gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        image_model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_api_key
        self.model = model or settings.audit_model
        self.image_model = image_model or settings.image_model
        self.transport = transport

    async def audit(self, corpus: Corpus, scenario: str, use_search: bool = False) -> AuditReport:
        """Run a compliance audit of ``scenario`` against the whole corpus."""
        prompt = AUDIT_PROMPT.format(
            scenario=scenario, regulation_text=corpus.regulation_text()
        )
        body = self._build_body(corpus.visual_pages(), prompt, thinking=True)
        if use_search:
            body["tools"] = [{"google_search": {}}]

        data = await self._generate(self.model, body)
        text = self._extract_text(data) or NO_AUDIT_RESPONSE
        report = AuditReport(
            status=classify_verdict(text),
            raw_markdown=text,
            grounding_urls=self._extract_grounding(data),
        )
        logger.info(
            "Gemini audit finished: %s (%d chars, %d references)",
            report.status.value, len(text), len(report.grounding_urls),
        )
        return report

    async def ask(self, corpus: Corpus, question: str) -> str:
        """Answer a question about the corpus."""
        prompt = QUESTION_PROMPT.format(
            question=question, regulation_text=corpus.regulation_text()
        )
        body = self._build_body(corpus.visual_pages(), prompt, thinking=True)
        data = await self._generate(self.model, body)
        return self._extract_text(data) or NO_ANSWER_RESPONSE

    async def edit_image(self, image: str, prompt: str) -> str:
        """Edit one image with a text instruction and return the new image."""
        body = self._build_body([image], prompt, thinking=False)
        data = await self._generate(self.image_model, body)
        for part in self._candidate_parts(data):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                return f"data:image/png;base64,{inline['data']}"
        raise RemoteServiceError("No image generated")

    def _build_body(self, images: list[str], prompt: str, thinking: bool) -> dict:
        parts = [inline_part(image) for image in images]
        parts.append({"text": prompt})
        body: dict = {"contents": [{"role": "user", "parts": parts}]}
        if thinking:
            body["generationConfig"] = {
                "thinkingConfig": {"thinkingBudget": settings.thinking_budget}
            }
        return body

    async def _generate(self, model: str, body: dict) -> dict:
        url = f"{settings.gemini_api_url}/{model}:generateContent"
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }
        try:
            async with httpx.AsyncClient(
                timeout=settings.request_timeout, transport=self.transport
            ) as client:
                response = await client.post(url, headers=headers, json=body)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Gemini %s returned HTTP %d", model, exc.response.status_code)
            raise RemoteServiceError(
                f"Gemini request failed with status {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Gemini %s request failed: %s", model, exc)
            raise RemoteServiceError(f"Gemini request failed: {exc}") from exc
        except ValueError as exc:
            raise RemoteServiceError("Gemini returned a malformed response") from exc

    def _candidate_parts(self, data: dict) -> list[dict]:
        try:
            return data["candidates"][0]["content"].get("parts", [])
        except (KeyError, IndexError, TypeError, AttributeError):
            return []

    def _extract_text(self, data: dict) -> str:
        """Concatenate answer text parts, skipping thought summaries."""
        return "".join(
            part["text"]
            for part in self._candidate_parts(data)
            if "text" in part and not part.get("thought")
        )

    def _extract_grounding(self, data: dict) -> list[GroundingReference]:
        try:
            chunks = data["candidates"][0]["groundingMetadata"]["groundingChunks"]
        except (KeyError, IndexError, TypeError):
            return []

        references: list[GroundingReference] = []
        for chunk in chunks or []:
            web = chunk.get("web") or {}
            maps = chunk.get("maps") or {}
            uri = web.get("uri") or maps.get("uri")
            if not uri:
                continue
            title = web.get("title") or maps.get("title") or "Reference"
            references.append(GroundingReference(uri=uri, title=title))
        return references

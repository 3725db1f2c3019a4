# Overview: Service-layer glue to the external text-completion service used for "insights".

"""
External Insight Collaborator

Owner-scoped aggregates are rendered into a prompt and sent to a Gemini
model; the reply text is returned as-is. The collaborator is optional:

- no GEMINI_API_KEY configured -> every call answers with a fallback text
- upstream error or timeout    -> same fallback, logged as a warning

Callers never see UpstreamUnavailable; they get an InsightResult whose
`fallback` flag tells the client the text is canned.

The client lives in app.extensions["insight_client"] so tests can swap in
a fake.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

import google.generativeai as genai
from flask import current_app


class UpstreamUnavailable(Exception):
    """The completion service is unconfigured, unreachable, or returned nothing."""


class CompletionClient(Protocol):
    def complete(self, prompt: str) -> str: ...


class GeminiClient:
    """Thin wrapper over google-generativeai with a per-call timeout."""

    def __init__(self, api_key: str, model_name: str, timeout: float):
        genai.configure(api_key=api_key)
        self.model_name = model_name.split("/", 1)[1] if model_name.startswith("models/") else model_name
        self.timeout = timeout
        self._model = genai.GenerativeModel(self.model_name)

    def complete(self, prompt: str) -> str:
        try:
            response = self._model.generate_content(prompt, request_options={"timeout": self.timeout})
            text = (response.text or "").strip()
        except Exception as e:  # noqa: BLE001 - any client/transport failure degrades
            raise UpstreamUnavailable(f"{type(e).__name__}: {e}") from e
        if not text:
            raise UpstreamUnavailable("Empty response from model")
        return text


ROLE_ANALYST = (
    "You are a business data analyst for small companies. Base every statement on the "
    "figures provided, quote numbers and percentages where they exist, explain the business "
    "impact of what you see, and finish with concrete, prioritised recommendations. "
    "Be concise."
)

ROLE_ASSISTANT = (
    "You are an assistant for a small-business owner covering inventory, sales and "
    "customers. Give specific, practical answers grounded in the owner's data when it is "
    "provided, and ask a clarifying question when the request is ambiguous."
)

ROLE_STRATEGIST = (
    "You are a business intelligence advisor. Look for opportunities and risks in the data: "
    "trends, stock problems, customer behaviour, revenue levers and operational efficiency."
)

FALLBACK_ANALYTICS = "AI analysis is unavailable right now, so no insight could be generated for this query. Please try again later."
FALLBACK_INSIGHTS = "AI insights are unavailable right now. Your dashboard figures are still up to date."
FALLBACK_TRENDS = "AI trend analysis is unavailable right now. The monthly figures are shown without commentary."
FALLBACK_CHAT = "The AI assistant is unavailable right now. Please try again later."


@dataclass(frozen=True)
class InsightResult:
    text: str
    fallback: bool


def build_client(config: dict) -> GeminiClient | None:
    api_key = config.get("GEMINI_API_KEY")
    if not api_key:
        return None
    return GeminiClient(
        api_key=api_key,
        model_name=config.get("GEMINI_MODEL", "gemini-1.5-flash"),
        timeout=float(config.get("INSIGHT_TIMEOUT_SECONDS", 30)),
    )


def _client() -> CompletionClient | None:
    return current_app.extensions.get("insight_client")


def _as_json(data: Any) -> str:
    return json.dumps(data, indent=2, sort_keys=True, default=str)


def _complete(prompt: str, fallback: str, operation: str) -> InsightResult:
    client = _client()
    try:
        if client is None:
            raise UpstreamUnavailable("No completion client configured")
        return InsightResult(text=client.complete(prompt), fallback=False)
    except UpstreamUnavailable as e:
        current_app.logger.warning("Insight %s degraded to fallback: %s", operation, e)
        return InsightResult(text=fallback, fallback=True)


def analytics_query(data: dict, query: str) -> InsightResult:
    prompt = (
        f"{ROLE_ANALYST}\n\n"
        f"Business data:\n{_as_json(data)}\n\n"
        f"Question: {query}\n\n"
        "Answer the question with specific insights and actionable recommendations."
    )
    return _complete(prompt, FALLBACK_ANALYTICS, "analytics_query")


def business_insights(data: dict) -> InsightResult:
    prompt = (
        f"{ROLE_STRATEGIST}\n\n"
        f"Business data:\n{_as_json(data)}\n\n"
        "Cover, in order: key performance insights; emerging trends and opportunities; "
        "risks to monitor; optimisation recommendations; revenue growth opportunities. "
        "Use short headed sections."
    )
    return _complete(prompt, FALLBACK_INSIGHTS, "business_insights")


def trend_analysis(history: list[dict]) -> InsightResult:
    prompt = (
        f"{ROLE_ANALYST}\n\n"
        f"Monthly history (oldest first):\n{_as_json(history)}\n\n"
        "Identify the trend, any seasonality, a short-term growth projection, anomalies, "
        "and the strategic recommendations that follow. Quote numbers and percentages."
    )
    return _complete(prompt, FALLBACK_TRENDS, "trend_analysis")


def chatbot_reply(message: str, context: dict | None = None) -> InsightResult:
    prompt = f"{ROLE_ASSISTANT}\n\nOwner's message: {message}"
    if context:
        prompt += f"\n\nBusiness context:\n{_as_json(context)}"
    prompt += "\n\nReply helpfully and specifically."
    return _complete(prompt, FALLBACK_CHAT, "chatbot")

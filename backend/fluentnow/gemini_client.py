from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, Optional
from .constants import GEMINI_MODELS
from .errors import (
	AuthError,
	EmptyResponseError,
	InputValidationError,
	MalformedResponseError,
	NetworkError,
	RateLimitedError,
	UpstreamError,
)
from .settings import Settings

logger = logging.getLogger(__name__)

_INVALID_KEY_MARKERS = ("API_KEY_INVALID", "API key not valid", "API key expired")


def resolve_model(alias: str) -> str:
	if alias in GEMINI_MODELS:
		return GEMINI_MODELS[alias]
	if alias in GEMINI_MODELS.values():
		return alias
	raise InputValidationError(f"model must be one of {sorted(GEMINI_MODELS)}")


class GeminiClient:
	def __init__(
		self,
		api_key: str,
		settings: Settings,
		*,
		model: Optional[str] = None,
		base_url: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		if not api_key or not api_key.strip():
			raise AuthError("Gemini API key is not configured")
		self.api_key = api_key.strip()
		self.provider = settings.gemini_provider
		self._settings = settings
		self._base_url_override = base_url
		self.set_model(model or settings.gemini_model)
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)

	def set_model(self, alias: str) -> None:
		self.model = resolve_model(alias)
		if self._base_url_override:
			self.base_url = self._base_url_override
			self._auth_in_query = self.provider != "vertex"
		elif self.provider == "vertex":
			region = self._settings.vertex_region
			project = self._settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True

	async def generate(
		self,
		prompt: str,
		*,
		json_mode: bool = False,
		temperature: Optional[float] = None,
		max_output_tokens: Optional[int] = None,
	) -> str:
		payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
		generation_config: Dict[str, Any] = {}
		if json_mode:
			generation_config["responseMimeType"] = "application/json"
		if temperature is not None:
			generation_config["temperature"] = temperature
		if max_output_tokens is not None:
			generation_config["maxOutputTokens"] = max_output_tokens
		if generation_config:
			payload["generationConfig"] = generation_config
		return await self._post_payload(payload)

	async def _post_payload(self, payload: Dict[str, Any]) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
		except httpx.TimeoutException as err:
			raise NetworkError(f"Gemini request timed out: {err}") from err
		except httpx.RequestError as err:
			raise NetworkError(f"Gemini request failed: {err}") from err
		if r.status_code >= 400:
			raise _error_for_status(r)
		try:
			data = r.json()
		except ValueError as err:
			raise MalformedResponseError("Gemini returned a body that is not JSON") from err
		return _candidate_text(data)

	async def aclose(self) -> None:
		await self._client.aclose()


def _error_for_status(r: httpx.Response) -> Exception:
	body = r.text or ""
	logger.warning("Gemini request failed with status %s", r.status_code)
	if r.status_code in (401, 403) or (r.status_code == 400 and any(m in body for m in _INVALID_KEY_MARKERS)):
		return AuthError("Invalid API key. Please check your key and try again.")
	if r.status_code == 429:
		return RateLimitedError("API quota exceeded. Please wait and try again.")
	if r.status_code >= 500:
		return UpstreamError(f"Gemini service error ({r.status_code})")
	return UpstreamError(f"Gemini request rejected ({r.status_code}): {body[:200]}")


def _candidate_text(data: Any) -> str:
	if not isinstance(data, dict):
		raise MalformedResponseError("Unexpected Gemini response shape")
	candidates = data.get("candidates")
	if not candidates:
		raise EmptyResponseError("Gemini returned no candidates")
	try:
		parts = candidates[0].get("content", {}).get("parts") or []
	except AttributeError as err:
		raise MalformedResponseError("Unexpected Gemini response shape") from err
	text = "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict))
	if not text.strip():
		raise EmptyResponseError("Gemini returned an empty response")
	return text

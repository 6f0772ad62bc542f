from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import requests

from meeting_notes_agent.common.config import get_settings
from meeting_notes_agent.common.errors import ErrCode, ProviderError
from meeting_notes_agent.common.logging import get_llm_logger

from .base import GenerativeProvider, Part, UploadedFile

log = get_llm_logger()


@dataclass
class GeminiConfig:
    """Настройки Gemini REST API."""

    api_base: str
    api_key: str
    model: str = "gemini-3-flash-preview"
    timeout_s: int = 120
    file_poll_attempts: int = 30
    file_poll_interval_s: float = 2.0


def _part_payload(part: Part) -> dict[str, Any]:
    if part.file is not None:
        return {"file_data": {"file_uri": part.file.uri, "mime_type": part.file.mime_type}}
    return {"text": part.text or ""}


class GeminiProvider(GenerativeProvider):
    """Провайдер Gemini: File API (resumable upload) + generateContent."""

    def __init__(self, cfg: GeminiConfig | None = None) -> None:
        if cfg is None:
            s = get_settings()
            if not s.gemini_api_key:
                raise ProviderError(ErrCode.LLM_PROVIDER_ERROR, "GEMINI_API_KEY не задан")
            cfg = GeminiConfig(
                api_base=s.gemini_api_base,
                api_key=s.gemini_api_key,
                model=s.gemini_model,
                timeout_s=int(s.gemini_timeout_sec),
                file_poll_attempts=int(s.gemini_file_poll_attempts),
                file_poll_interval_s=float(s.gemini_file_poll_interval_sec),
            )
        self.cfg = cfg
        self.model = cfg.model

    def _url(self, path: str) -> str:
        return self.cfg.api_base.rstrip("/") + path

    def _post(self, url: str, **kwargs: Any) -> requests.Response:
        try:
            return requests.post(url, timeout=self.cfg.timeout_s, **kwargs)
        except requests.RequestException as e:
            log.error(
                "llm_http_error",
                extra={"payload": {"provider": "gemini", "err": str(e)[:300]}},
            )
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR,
                f"Gemini request failed: {e}",
                {"err": str(e)},
            ) from e

    @staticmethod
    def _raise_for_status(resp: requests.Response, what: str) -> None:
        if resp.status_code >= 400:
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR,
                f"Gemini {what} failed ({resp.status_code}): {resp.text[:500]}",
                {"status": resp.status_code},
            )

    # -------------------------------------------------------------------------
    # File API
    # -------------------------------------------------------------------------
    def upload_file(self, *, data: bytes, mime_type: str, display_name: str) -> UploadedFile:
        start = self._post(
            self._url("/upload/v1beta/files"),
            headers={
                "x-goog-api-key": self.cfg.api_key,
                "x-goog-upload-protocol": "resumable",
                "x-goog-upload-command": "start",
                "x-goog-upload-header-content-length": str(len(data)),
                "x-goog-upload-header-content-type": mime_type,
                "content-type": "application/json",
            },
            json={"file": {"displayName": display_name}},
        )
        self._raise_for_status(start, "file upload start")

        upload_url = start.headers.get("x-goog-upload-url")
        if not upload_url:
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR, "Gemini file upload: missing x-goog-upload-url"
            )

        finalize = self._post(
            upload_url,
            headers={
                "x-goog-upload-command": "upload, finalize",
                "x-goog-upload-offset": "0",
                "content-type": mime_type,
                "content-length": str(len(data)),
            },
            data=data,
        )
        self._raise_for_status(finalize, "file upload finalize")

        info = (finalize.json() or {}).get("file") or {}
        if not info.get("uri"):
            raise ProviderError(ErrCode.LLM_PROVIDER_ERROR, "Gemini file upload: missing file.uri")

        uploaded = UploadedFile(
            uri=info["uri"],
            mime_type=info.get("mimeType") or mime_type,
            name=info.get("name"),
            state=info.get("state"),
        )
        self._wait_until_active(uploaded)
        return uploaded

    def _wait_until_active(self, file: UploadedFile) -> None:
        if not file.name or not file.state or file.state == "ACTIVE":
            return
        if file.state == "FAILED":
            raise ProviderError(ErrCode.LLM_PROVIDER_ERROR, "Gemini File API: file processing failed")

        for _ in range(max(1, self.cfg.file_poll_attempts)):
            time.sleep(self.cfg.file_poll_interval_s)
            try:
                resp = requests.get(
                    self._url(f"/v1beta/{file.name}"),
                    headers={"x-goog-api-key": self.cfg.api_key},
                    timeout=self.cfg.timeout_s,
                )
            except requests.RequestException:
                return
            if resp.status_code >= 400:
                return
            state = ((resp.json() or {}).get("file") or {}).get("state")
            file.state = state
            if not state or state == "ACTIVE":
                return
            if state == "FAILED":
                raise ProviderError(
                    ErrCode.LLM_PROVIDER_ERROR, "Gemini File API: file processing failed"
                )

    # -------------------------------------------------------------------------
    # generateContent
    # -------------------------------------------------------------------------
    def _generate(self, parts: list[Part], generation_config: dict[str, Any]) -> str:
        resp = self._post(
            self._url(f"/v1beta/models/{self.model}:generateContent"),
            headers={"x-goog-api-key": self.cfg.api_key, "content-type": "application/json"},
            json={
                "contents": [{"role": "user", "parts": [_part_payload(p) for p in parts]}],
                "generationConfig": generation_config,
            },
        )
        self._raise_for_status(resp, "generateContent")

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(
                ErrCode.LLM_PROVIDER_ERROR,
                "Gemini returned invalid JSON",
                {"text_head": resp.text[:500]},
            ) from e

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text:
            raise ProviderError(ErrCode.LLM_PROVIDER_ERROR, "Gemini returned no text")
        return text

    def generate_text(self, *, parts: list[Part], temperature: float = 0.4) -> str:
        return self._generate(parts, {"temperature": temperature})

    def generate_json(
        self, *, parts: list[Part], schema: dict[str, Any], temperature: float = 0.2
    ) -> str:
        return self._generate(
            parts,
            {
                "temperature": temperature,
                "responseMimeType": "application/json",
                "responseJsonSchema": schema,
            },
        )

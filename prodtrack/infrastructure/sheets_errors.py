from __future__ import annotations

import json
from typing import Optional

import gspread
import requests
from google.auth.exceptions import DefaultCredentialsError, TransportError

from prodtrack.core.errors import InfraError, TableNotFoundError, TransientExternalError

_TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}


class SheetsConfigError(InfraError):
    pass


class SheetsApiDisabledError(SheetsConfigError):
    pass


class SheetsPermissionError(SheetsConfigError):
    pass


class SheetsNotFoundError(SheetsConfigError):
    pass


class SheetsCredentialsError(SheetsConfigError):
    pass


class SheetsRateLimitError(TransientExternalError):
    pass


class SheetsNetworkError(TransientExternalError):
    pass


def extract_response_status_code(ex: Exception) -> int | None:
    response = getattr(ex, "response", None)
    return getattr(response, "status_code", None)


def _extract_api_error_text(ex: gspread.exceptions.APIError) -> str:
    response = getattr(ex, "response", None)
    if response is not None:
        text = getattr(response, "text", "")
        if text:
            return text
    return str(ex)


def normalize_error_text(text: str) -> str:
    return text.strip().lower()


def _credentials_not_found_message(path: Optional[str]) -> str:
    if path:
        return f"No se encuentra credentials.json en {path}."
    return "No se encuentra credentials.json."


def is_transient_api_error(text_lower: str, status_code: int | None) -> bool:
    if status_code in _TRANSIENT_STATUS_CODES:
        return True
    return any(
        token in text_lower
        for token in (
            "[429]",
            "[503]",
            "resource_exhausted",
            "rate_limit_exceeded",
            "quota exceeded",
            "service unavailable",
            "backend error",
        )
    )


def classify_api_error(text_lower: str, status_code: int | None) -> Exception:
    if is_transient_api_error(text_lower, status_code):
        return SheetsRateLimitError(f"Google Sheets no disponible temporalmente (status={status_code}).")
    if "google sheets api has not been used" in text_lower or "it is disabled" in text_lower:
        return SheetsApiDisabledError("La API de Google Sheets no está habilitada en el proyecto de Google Cloud.")
    if status_code == 404 or "[404]" in text_lower or "requested entity was not found" in text_lower:
        return SheetsNotFoundError("El spreadsheet o la hoja solicitada no existe.")
    if status_code == 403 or "[403]" in text_lower or "permission_denied" in text_lower:
        return SheetsPermissionError("La hoja no está compartida con la cuenta de servicio.")
    return SheetsConfigError(text_lower)


def map_gspread_exception(ex: Exception) -> Exception:
    if isinstance(ex, InfraError | TableNotFoundError):
        return ex
    if isinstance(ex, gspread.exceptions.WorksheetNotFound):
        return TableNotFoundError(f"Sheet not found: {ex}")
    if isinstance(ex, gspread.exceptions.APIError):
        text = _extract_api_error_text(ex)
        return classify_api_error(normalize_error_text(text), extract_response_status_code(ex))
    if isinstance(ex, requests.exceptions.ConnectionError | requests.exceptions.Timeout | TransportError):
        return SheetsNetworkError(f"Sin conexión con Google Sheets: {ex}")
    if isinstance(ex, FileNotFoundError):
        return SheetsCredentialsError(_credentials_not_found_message(getattr(ex, "filename", None)))
    if isinstance(ex, json.JSONDecodeError | DefaultCredentialsError):
        return SheetsCredentialsError("El credentials.json no es válido. Revisa el contenido del archivo.")
    return SheetsConfigError(str(ex))

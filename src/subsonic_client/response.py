"""Decoding of the ``subsonic-response`` envelope (JSON and XML).

Only the envelope is interpreted here: status, version, error and the
OpenSubsonic server attributes. Operation payloads are handed back as-is.
"""

import json
import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, Optional, Tuple

from .exceptions import MalformedResponseError, NetworkFailure
from .models import RawResponse, ResponseEnvelope
from .version import ProtocolVersion

logger = logging.getLogger(__name__)

ROOT_ELEMENT = "subsonic-response"
XML_NAMESPACE = "http://subsonic.org/restapi"

ENVELOPE_CONTENT_TYPES = ("application/json", "text/json", "text/xml", "application/xml")

# Top-level members that belong to the envelope rather than the payload
_ENVELOPE_KEYS = frozenset({"status", "version", "error", "type", "serverVersion", "openSubsonic"})


def is_envelope_content_type(content_type: str) -> bool:
    """True if a response's Content-Type indicates a JSON/XML envelope."""
    return content_type.split(";")[0].strip().lower() in ENVELOPE_CONTENT_TYPES


def decode_envelope(
    content: bytes, response_format: str = "json", status_code: int = 200
) -> ResponseEnvelope:
    """Parse raw bytes into a ResponseEnvelope without raising server errors.

    Args:
        content: Raw response body
        response_format: Expected envelope format ("json" or "xml")
        status_code: HTTP status of the response

    Returns:
        Decoded ResponseEnvelope (status may be "failed")

    Raises:
        MalformedResponseError: If the body is not a valid envelope
        NetworkFailure: If the body is not an envelope and the HTTP status
            signals a transport-level error (4xx)
    """
    try:
        if response_format == "xml":
            return _decode_xml(content)
        return _decode_json(content)
    except MalformedResponseError:
        if status_code >= 400:
            raise NetworkFailure(
                f"HTTP {status_code} without a Subsonic envelope", status_code=status_code
            ) from None
        raise


def decode_response(raw: RawResponse, response_format: str = "json") -> ResponseEnvelope:
    """Decode ``raw`` and raise the typed exception for a failed envelope.

    Raises:
        SubsonicError: Subclass matching the server error code
        MalformedResponseError: If the body is not a valid envelope
    """
    envelope = decode_envelope(raw.content, response_format, raw.status_code)
    return envelope.raise_for_error()


def _decode_json(content: bytes) -> ResponseEnvelope:
    try:
        document = json.loads(content)
    except ValueError as e:
        raise MalformedResponseError(f"Response is not valid JSON: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get(ROOT_ELEMENT), dict):
        raise MalformedResponseError(f"Response has no '{ROOT_ELEMENT}' object")

    body: Dict[str, Any] = document[ROOT_ELEMENT]
    error = body.get("error")
    if error is not None and not isinstance(error, dict):
        raise MalformedResponseError("Error member is not an object")

    return _build_envelope(
        status=body.get("status"),
        version=body.get("version"),
        error=error,
        payload={key: value for key, value in body.items() if key not in _ENVELOPE_KEYS},
        server_type=body.get("type"),
        server_version=body.get("serverVersion"),
        open_subsonic=body.get("openSubsonic") is True,
    )


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _decode_xml(content: bytes) -> ResponseEnvelope:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise MalformedResponseError(f"Response is not valid XML: {e}") from e

    if _local_name(root.tag) != ROOT_ELEMENT:
        raise MalformedResponseError(f"Response root is not '{ROOT_ELEMENT}'")

    error = None
    payload: Dict[str, Any] = {}
    for child in root:
        name = _local_name(child.tag)
        if name == "error":
            error = dict(child.attrib)
        else:
            payload[name] = child

    return _build_envelope(
        status=root.get("status"),
        version=root.get("version"),
        error=error,
        payload=payload,
        server_type=root.get("type"),
        server_version=root.get("serverVersion"),
        open_subsonic=root.get("openSubsonic") == "true",
    )


def _build_envelope(
    status: Any,
    version: Any,
    error: Optional[Dict[str, Any]],
    payload: Dict[str, Any],
    server_type: Optional[str],
    server_version: Optional[str],
    open_subsonic: bool,
) -> ResponseEnvelope:
    if status not in ("ok", "failed"):
        raise MalformedResponseError(f"Unknown response status: {status!r}")

    try:
        parsed_version = ProtocolVersion.parse(version)
    except ValueError as e:
        raise MalformedResponseError(f"Invalid response version: {version!r}") from e

    error_code, error_message = None, None
    if status == "failed":
        if error is None:
            raise MalformedResponseError("Failed response carries no error")
        error_code, error_message = _parse_error(error)
        logger.debug(f"Subsonic API error {error_code}: {error_message}")

    return ResponseEnvelope(
        status=status,
        version=parsed_version,
        error_code=error_code,
        error_message=error_message,
        # A failed envelope never exposes a partial payload
        payload=payload if status == "ok" else {},
        server_type=server_type,
        server_version=server_version,
        open_subsonic=open_subsonic,
    )


def _parse_error(error: Dict[str, Any]) -> Tuple[int, str]:
    code = error.get("code")
    if isinstance(code, bool):
        raise MalformedResponseError(f"Invalid error code: {code!r}")
    try:
        code = int(code)
    except (TypeError, ValueError) as e:
        raise MalformedResponseError(f"Invalid error code: {code!r}") from e
    return code, str(error.get("message", ""))

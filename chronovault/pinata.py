# chronovault/pinata.py
import json
from typing import Dict, Optional

import requests

from .settings import settings

PINATA_BASE_URL = "https://api.pinata.cloud"
PIN_FILE_URL = f"{PINATA_BASE_URL}/pinning/pinFileToIPFS"


class PinataError(Exception):
    pass


def is_configured() -> bool:
    return bool(settings.PINATA_JWT or (settings.PINATA_API_KEY and settings.PINATA_API_SECRET))


def _auth_headers() -> Dict[str, str]:
    """
    Build authorization headers for Pinata.
    """
    headers = {}
    if settings.PINATA_JWT:
        headers["Authorization"] = f"Bearer {settings.PINATA_JWT}"
    elif settings.PINATA_API_KEY and settings.PINATA_API_SECRET:
        headers["pinata_api_key"] = settings.PINATA_API_KEY
        headers["pinata_secret_api_key"] = settings.PINATA_API_SECRET
    else:
        raise PinataError("Pinata credentials not configured properly in .env")
    return headers


def pin_file(name: str, content: bytes, mime_type: str, metadata: Optional[dict] = None) -> dict:
    """
    Uploads file content to Pinata and returns the API JSON response.
    """
    try:
        headers = _auth_headers()
        files = {"file": (name, content, mime_type)}
        payload = {}
        if metadata:
            payload["pinataMetadata"] = json.dumps(metadata)

        res = requests.post(PIN_FILE_URL, files=files, data=payload, headers=headers, timeout=60)
        res.raise_for_status()
        return res.json()

    except (requests.RequestException, ValueError) as e:
        raise PinataError(f"Pinata file upload failed: {e}") from e


def gateway_url(cid: str) -> str:
    return f"{settings.IPFS_GATEWAY.rstrip('/')}/{cid}"

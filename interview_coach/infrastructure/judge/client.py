"""
REST client for the remote content judge.
"""
import json
import logging
from typing import Any, Dict, Optional

import requests

from ...config import JUDGE_API_URL, JUDGE_TIMEOUT

logger = logging.getLogger("judge_client")


class JudgeClient:
    """HTTP client that asks the content judge to grade one answer."""

    def __init__(self, url: str = JUDGE_API_URL, timeout: float = JUDGE_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def evaluate(self, question: str, answer: str, face_score: float) -> Dict[str, Any]:
        """
        POST the question, answer and face score to the judge.

        Returns:
            Decoded JSON body of a successful response

        Raises:
            requests.RequestException: On connection problems or timeout
            RuntimeError: On an error status or a body reporting failure
            ValueError: If the body is not a JSON object
        """
        body = {
            "question": question,
            "answer": answer,
            "faceScore": float(face_score),
        }
        headers = {"Content-Type": "application/json"}

        logger.debug("Sending answer to judge at %s", self.url)
        resp = self.session.post(self.url, headers=headers, json=body, timeout=self.timeout)

        if resp.status_code >= 400:
            raise RuntimeError(f"Judge error {resp.status_code}: {self._error_message(resp)}")

        try:
            data = resp.json()
        except ValueError:
            raise ValueError(f"Judge did not return valid JSON: {resp.text[:200]}")

        if not isinstance(data, dict):
            raise ValueError(f"Judge returned unexpected payload: {data!r}")

        if not data.get("success"):
            raise RuntimeError(data.get("error") or data.get("message") or "Judge reported failure")

        logger.debug("Raw judge response: %s", json.dumps(data, separators=(",", ":")))
        return data

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        """Pull the error text out of an error response, falling back to the status."""
        try:
            payload = resp.json()
        except ValueError:
            return f"HTTP {resp.status_code}"
        if isinstance(payload, dict):
            return payload.get("error") or payload.get("message") or f"HTTP {resp.status_code}"
        return f"HTTP {resp.status_code}"

    def check_availability(self) -> bool:
        """Return True if the judge answers an OPTIONS request successfully."""
        try:
            resp = self.session.options(self.url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.info("Judge unavailable: %s", e)
            return False
        return resp.ok

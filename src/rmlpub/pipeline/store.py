"""
Dataset upload to the storage endpoint.

The endpoint accepts a POST of serialized RDF and answers with a Location
header naming the created resource (see location.resolve_location).
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from .. import __version__
from ..domain.enums import content_type_for
from ..types import HttpTimeouts, StoreError
from .feed import is_success, response_excerpt

logger = logging.getLogger(__name__)


def create_session() -> requests.Session:
    """Create the HTTP session shared by the store and feed steps."""
    session = requests.Session()
    session.headers["User-Agent"] = f"rmlpub/{__version__}"
    return session


class DatasetStore:
    """Uploads serialized datasets to a storage endpoint."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        bearer_token: Optional[str] = None,
        timeouts: Optional[HttpTimeouts] = None,
    ):
        self.session = session if session is not None else requests.Session()
        self.bearer_token = bearer_token if bearer_token and bearer_token.strip() else None
        self.timeouts = timeouts or HttpTimeouts()

    def upload(self, post_url: str, data: bytes, serialization: str) -> requests.Response:
        """
        POST dataset bytes with the content type of their serialization.

        Args:
            post_url: Storage endpoint URL
            data: Serialized dataset
            serialization: Serialization name (turtle, nquads, trig, trix, jsonld)

        Returns:
            The endpoint's response (inspect its Location header)

        Raises:
            StoreError: If the POST fails, times out or returns a non-2xx status
        """
        headers = {"Content-Type": content_type_for(serialization)}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"

        logger.debug(f"Uploading {len(data):,} bytes as {headers['Content-Type']}")
        try:
            response = self.session.post(
                post_url,
                data=data,
                headers=headers,
                timeout=self.timeouts.as_requests(),
            )
        except requests.RequestException as e:
            logger.error(f"POST {post_url} failed: {e}")
            raise StoreError(post_url, None, f"POST {post_url} failed: {e}") from e

        logger.info(f"POST {post_url} -> HTTP {response.status_code}")
        if not is_success(response.status_code):
            excerpt = response_excerpt(response)
            if excerpt:
                logger.error(excerpt)
            raise StoreError(post_url, response.status_code, f"POST failed: HTTP {response.status_code}")
        return response

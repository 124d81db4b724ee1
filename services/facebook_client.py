"""
Facebook Graph API lookups for a business page's audience and verification.
"""

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

GRAPH_URL = 'https://graph.facebook.com'
GRAPH_VERSION = 'v18.0'
PAGE_FIELDS = 'id,name,fan_count,followers_count,is_verified,verification_status,category,website,about,location'


class FacebookClient:
    """App-token Graph client. Failures are logged and reported as None."""

    def __init__(self, app_id: str, app_secret: str, timeout: int = 10):
        self.app_id = app_id
        self.app_secret = app_secret
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.app_id and self.app_secret)

    def _get(self, url: str, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            response = requests.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Facebook Graph request failed ({url}): {e}")
            return None
        if isinstance(data, dict) and data.get('error'):
            logger.warning(f"Facebook Graph error: {data['error'].get('message')}")
            return None
        return data

    def access_token(self) -> Optional[str]:
        if not self.configured:
            return None
        data = self._get(f"{GRAPH_URL}/oauth/access_token", {
            'client_id': self.app_id,
            'client_secret': self.app_secret,
            'grant_type': 'client_credentials',
        })
        return (data or {}).get('access_token')

    def business_social_media(self, business_name: str, location: str = None) -> Optional[Dict[str, Any]]:
        """Follower count and verification of the best matching page, or None."""
        token = self.access_token()
        if not token:
            return None

        query = f"{business_name} {location}" if location else business_name
        search = self._get(f"{GRAPH_URL}/{GRAPH_VERSION}/search", {
            'q': query, 'type': 'page', 'fields': 'id,name', 'limit': 5, 'access_token': token,
        })
        pages = (search or {}).get('data') or []
        if not pages:
            logger.info(f"No Facebook pages found for '{query}'")
            return None

        page = self._get(f"{GRAPH_URL}/{GRAPH_VERSION}/{pages[0]['id']}", {
            'fields': PAGE_FIELDS, 'access_token': token,
        })
        if not page:
            return None

        return {
            'facebook': {
                'pageId': page.get('id'),
                'name': page.get('name'),
                'followers': page.get('fan_count') or page.get('followers_count') or 0,
                'verified': bool(page.get('is_verified')),
                'category': page.get('category'),
                'website': page.get('website'),
                'about': page.get('about'),
                'location': page.get('location'),
            },
            'linkedin': {'connections': None, 'employees': None, 'verified': None},
            'instagram': {'followers': None, 'posts': None},
            'dataSource': 'facebook_graph',
        }

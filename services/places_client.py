"""
Google Places (new API) lookups for ratings, reviews and listing details.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

PLACES_BASE_URL = 'https://places.googleapis.com/v1'
SEARCH_FIELD_MASK = ('places.id,places.displayName,places.formattedAddress,places.rating,'
                     'places.userRatingCount,places.types,places.businessStatus')
DETAILS_FIELD_MASK = ('id,displayName,formattedAddress,nationalPhoneNumber,websiteUri,rating,'
                      'userRatingCount,reviews,photos,businessStatus,types')
MAX_SEARCH_RESULTS = 5
MAX_REVIEWS = 5


class PlacesClient:
    """Thin requests wrapper. Every method returns None/[] instead of raising."""

    def __init__(self, api_key: str, timeout: int = 10):
        self.api_key = api_key
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self, field_mask: str) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'X-Goog-Api-Key': self.api_key,
            'X-Goog-FieldMask': field_mask,
        }

    def search(self, business_name: str, address: str = None) -> List[Dict[str, Any]]:
        if not self.configured:
            return []
        query = f"{business_name} {address}" if address else business_name
        try:
            response = requests.post(
                f"{PLACES_BASE_URL}/places:searchText",
                headers=self._headers(SEARCH_FIELD_MASK),
                json={'textQuery': query, 'maxResultCount': MAX_SEARCH_RESULTS},
                timeout=self.timeout
            )
            response.raise_for_status()
            places = response.json().get('places') or []
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Google Places search failed for '{query}': {e}")
            return []
        logger.info(f"Google Places found {len(places)} results for '{query}'")
        return places

    def details(self, place_id: str) -> Optional[Dict[str, Any]]:
        if not self.configured:
            return None
        try:
            response = requests.get(
                f"{PLACES_BASE_URL}/places/{place_id}",
                headers=self._headers(DETAILS_FIELD_MASK),
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Google Places details failed for {place_id}: {e}")
            return None

    def business_reviews(self, business_name: str, address: str = None) -> Optional[Dict[str, Any]]:
        """
        Rating, recent reviews and listing info for the best match, or None.
        """
        results = self.search(business_name, address)
        if not results:
            return None
        place = self.details(results[0].get('id'))
        if not place:
            return None

        reviews = [
            {
                'rating': review.get('rating') or 0,
                'text': (review.get('text') or {}).get('text', ''),
                'date': review.get('relativePublishTimeDescription') or 'Unknown',
                'author': (review.get('authorAttribution') or {}).get('displayName') or 'Anonymous',
            }
            for review in (place.get('reviews') or [])[:MAX_REVIEWS]
        ]
        return {
            'google': {
                'rating': place.get('rating') or 0,
                'reviewCount': place.get('userRatingCount') or 0,
                'recentReviews': reviews,
                'verified': True,
                'placeId': place.get('id'),
            },
            'businessInfo': {
                'name': (place.get('displayName') or {}).get('text', ''),
                'address': place.get('formattedAddress', ''),
                'phone': place.get('nationalPhoneNumber', ''),
                'website': place.get('websiteUri', ''),
                'businessStatus': place.get('businessStatus'),
                'types': place.get('types') or [],
            },
            'photos': [
                {
                    'reference': photo.get('name'),
                    'width': photo.get('widthPx') or 400,
                    'height': photo.get('heightPx') or 400,
                }
                for photo in place.get('photos') or []
            ],
            'dataSource': 'google_places',
        }

"""
Website-driven business onboarding.

Scrapes the business homepage, asks Claude to extract the profile, falls back
to keyword classification, attaches web intelligence and stores the result.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests

from ai_service import AIServiceError
from database.models import generate_id
from services.business_repository import store_business
from services.business_types import BUSINESS_TYPES, detect_business_type, get_preset
from services.errors import RentalHubError, ValidationError
from services.web_intelligence import fallback_intelligence

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; BusinessAnalyzer/1.0)'
MAX_CONTENT_LENGTH = 5000
RICH_CONTENT_LENGTH = 500

EMAIL_RE = re.compile(r'[\w\.-]+@[\w\.-]+\.\w+')
PHONE_RE = re.compile(r'\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}')
_SCRIPT_RE = re.compile(r'<script[^>]*>[\s\S]*?</script>', re.IGNORECASE)
_STYLE_RE = re.compile(r'<style[^>]*>[\s\S]*?</style>', re.IGNORECASE)
_TITLE_RE = re.compile(r'<title[^>]*>(.*?)</title>', re.IGNORECASE | re.DOTALL)
_H1_RE = re.compile(r'<h1[^>]*>(.*?)</h1>', re.IGNORECASE | re.DOTALL)
_H2_RE = re.compile(r'<h2[^>]*>(.*?)</h2>', re.IGNORECASE | re.DOTALL)
_META_DESC_RE = re.compile(r'<meta[^>]*name="description"[^>]*content="([^"]*)"[^>]*>', re.IGNORECASE)
_TAG_RE = re.compile(r'<[^>]*>')
_SPACE_RE = re.compile(r'\s+')
_DOMAIN_SUFFIX_RE = re.compile(r'\.(com|net|org|biz|info)$')

# Web intelligence runs on a shared pool so a slow lookup can be abandoned
_intel_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix='web-intel')

EXTRACTION_PROMPT = """You are analyzing the website {url} for a business intelligence system. Extract REAL, ACCURATE information only.

Website Content: {content}

Requirements:
1. Extract the actual business name from the website
2. Determine business type from the content, not assumptions
3. Find real contact information (email, phone, address)
4. Extract brand colors from the website styling
5. Identify the company's services and products
6. Write a description based on their about page or content

Business type keywords:
- heavy_equipment: excavator, bulldozer, crane, backhoe, skid steer, construction equipment
- party_rental: tent, table, chair, wedding, event, party supplies
- tool_rental: drill, saw, hammer, power tools, hand tools
- car_rental: vehicle, car, truck, auto, transportation

Return ONLY valid JSON:
{{
  "name": "Business name from the website header or title",
  "type": "heavy_equipment|party_rental|car_rental|tool_rental|custom",
  "industry": "Specific industry",
  "email": "Email found on the site",
  "phone": "Phone number found on the site",
  "address": "Address found on the site",
  "description": "2-3 sentence description",
  "features": ["5-6 services or features mentioned on the site"],
  "branding": {{"primaryColor": "#hex", "secondaryColor": "#hex", "logoUrl": "URL if found"}},
  "confidence": 1-100
}}"""

DEFAULT_ANALYSIS = {
    'name': 'Analysis Unavailable',
    'type': 'custom',
    'industry': 'Rental Services',
    'email': 'contact@business.com',
    'phone': '+1-555-000-0000',
    'address': 'Address not available',
    'description': 'Rental business services',
    'features': ['Inventory Management', 'Customer Portal', 'Booking System'],
    'branding': {'primaryColor': '#3B82F6', 'secondaryColor': '#10B981'},
    'confidence': 50,
    'customFields': [{'name': 'Item', 'type': 'text', 'required': True}],
}


def _strip_tags(fragment: str) -> str:
    return _TAG_RE.sub('', fragment).strip()


def extract_website_content(html: str) -> str:
    """Title, meta description and headings first, then the visible body text."""
    body = _STYLE_RE.sub('', _SCRIPT_RE.sub('', html))

    prioritized = []
    title = _TITLE_RE.search(html)
    if title:
        prioritized.append(f"TITLE: {_strip_tags(title.group(1))}")
    meta = _META_DESC_RE.search(html)
    if meta:
        prioritized.append(f"DESCRIPTION: {meta.group(1)}")
    prioritized.extend(f"HEADING: {_strip_tags(h)}" for h in _H1_RE.findall(html))
    prioritized.extend(f"SUBHEADING: {_strip_tags(h)}" for h in _H2_RE.findall(html)[:5])

    text = _SPACE_RE.sub(' ', _TAG_RE.sub(' ', body)).strip()
    combined = ' '.join(prioritized) + ' CONTENT: ' + text
    return combined[:MAX_CONTENT_LENGTH]


def business_name_from_domain(domain: str) -> str:
    """www.acme-rentals.com -> Acme-rentals; big.iron.net -> Big Iron"""
    name = _DOMAIN_SUFFIX_RE.sub('', re.sub(r'^www\.', '', domain))
    return ' '.join(part[:1].upper() + part[1:] for part in name.split('.'))


def analyze_content(content: str, domain: str) -> Dict[str, Any]:
    """Keyword and regex profile used when Claude is unavailable or fails."""
    business_type = detect_business_type(content)
    preset = get_preset(business_type)
    email = EMAIL_RE.search(content)
    phone = PHONE_RE.search(content)
    return {
        'name': business_name_from_domain(domain),
        'type': business_type,
        'industry': preset['industry'],
        'email': email.group(0) if email else f"contact@{domain}",
        'phone': phone.group(0) if phone else '+1-555-000-0000',
        'address': 'Address available on website',
        'description': f"Professional {business_type.replace('_', ' ')} services",
        'features': list(preset['features']),
        'branding': {
            'primaryColor': preset['branding']['primary_color'],
            'secondaryColor': preset['branding']['secondary_color'],
        },
        'confidence': 85 if len(content) > RICH_CONTENT_LENGTH else 70,
        'customFields': list(preset['custom_fields']),
    }


class BusinessAnalyzer:
    """Runs the onboarding analysis for one website."""

    def __init__(self, config, ai_service=None, intelligence_service=None, fallback_store=None):
        self.config = config
        self.ai_service = ai_service
        self.intelligence_service = intelligence_service
        self.fallback_store = fallback_store

    def scrape(self, url: str) -> str:
        try:
            response = requests.get(url, headers={'User-Agent': USER_AGENT},
                                    timeout=self.config.get('HTTP_TIMEOUT', 30))
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Scraping {url} failed: {e}")
            return ''
        content = extract_website_content(response.text)
        logger.info(f"Scraped {len(content)} characters from {url}")
        return content

    def ai_profile(self, url: str, content: str) -> Optional[Dict[str, Any]]:
        if not content or self.ai_service is None or not self.ai_service.is_available('claude'):
            return None
        try:
            profile = self.ai_service.complete_json(EXTRACTION_PROMPT.format(url=url, content=content))
        except AIServiceError as e:
            logger.warning(f"AI business analysis failed, using content analysis: {e}")
            return None
        if not profile.get('name') or not isinstance(profile['name'], str):
            return None
        if profile.get('type') not in BUSINESS_TYPES:
            profile['type'] = 'custom'
        if not isinstance(profile.get('branding'), dict):
            profile['branding'] = {}
        if not isinstance(profile.get('features'), list):
            profile['features'] = list(get_preset(profile['type'])['features'])
        if not profile.get('customFields') or not isinstance(profile['customFields'], list):
            profile['customFields'] = list(get_preset(profile['type']).get('custom_fields', []))
        try:
            profile['confidence'] = int(profile.get('confidence'))
        except (TypeError, ValueError):
            profile['confidence'] = 70
        logger.info(f"AI analysis identified business: {profile['name']}")
        return profile

    def web_intelligence(self, profile: Dict[str, Any], url: str) -> Dict[str, Any]:
        if self.intelligence_service is None:
            return fallback_intelligence()
        future = _intel_executor.submit(
            self.intelligence_service.gather,
            profile['name'], url, profile.get('phone'), profile.get('address'), profile.get('type'),
        )
        try:
            return future.result(timeout=self.config.get('WEB_INTELLIGENCE_TIMEOUT', 10))
        except FutureTimeout:
            logger.warning(f"Web intelligence timed out for {url}, using fallback")
        except Exception as e:
            logger.warning(f"Web intelligence failed for {url}, using fallback: {e}")
        return fallback_intelligence()

    def analyze(self, website_url: str, logo_url: str = None, create_sample_data: bool = False) -> Dict[str, Any]:
        if not website_url:
            raise ValidationError('Website URL is required', field='websiteUrl')
        domain = (urlparse(website_url).hostname or '').lower()
        if not domain:
            raise ValidationError(f"Invalid website URL: {website_url}", field='websiteUrl')

        logger.info(f"Analyzing website: {website_url}")
        content = self.scrape(website_url)
        profile = self.ai_profile(website_url, content) or analyze_content(content, domain)
        if logo_url:
            profile['branding']['logoUrl'] = logo_url

        profile['webIntelligence'] = self.web_intelligence(profile, website_url)
        profile['website'] = website_url

        try:
            stored, storage = store_business(profile, self.fallback_store, create_sample_data)
            profile['id'] = stored['id']
            profile['storage'] = storage
        except (OSError, ValueError, RentalHubError) as e:
            logger.error(f"Failed to store analyzed business: {e}")
            profile['id'] = generate_id('biz')
            profile['storage'] = 'none'
        return profile

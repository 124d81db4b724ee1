"""
Web intelligence: website signals, review and social lookups, an AI summary
and the 0-100 reputation score derived from them.
"""

import json
import logging
import random
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from ai_service import AIServiceError

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; BusinessAnalyzer/1.0)'
INDUSTRY_KEYWORDS = ('member', 'certified', 'accredited', 'licensed', 'association')
WEB_FEATURE_COUNT = 8

UNAVAILABLE_SIGNALS = {
    'hasSSL': False,
    'hasBlogSection': False,
    'hasContactForm': False,
    'hasTestimonials': False,
    'hasSocialLinks': False,
    'industryListings': [],
    'pageLoadSpeed': 'unknown',
    'mobileOptimized': False,
}

DEFAULT_AI_ANALYSIS = {
    'overallSentiment': 'neutral',
    'competitorAnalysis': {
        'marketPosition': 'challenger',
        'strengthsVsCompetitors': ['Good equipment quality', 'Responsive service'],
        'improvementAreas': ['Online presence', 'Review management'],
    },
    'recommendations': [
        {
            'category': 'social',
            'priority': 'high',
            'title': 'Increase Social Media Activity',
            'description': 'Post regular updates and engage with customers on social platforms',
            'estimatedImpact': 'Increase brand awareness by 25%',
            'timeframe': '2-3 months',
        },
        {
            'category': 'reviews',
            'priority': 'medium',
            'title': 'Implement Review Management System',
            'description': 'Actively request and respond to customer reviews',
            'estimatedImpact': 'Improve review rating by 0.5 stars',
            'timeframe': '1-2 months',
        },
    ],
}

ANALYSIS_PROMPT = """You are analyzing a {business_type} business called "{business_name}".

Based on this data:
- Website quality: {web}
- Social media presence: {social}
- Review data: {reviews}
- Media mentions: {media}

Provide a comprehensive analysis with:
1. Overall sentiment assessment
2. Competitive market position
3. Specific improvement recommendations
4. Strengths vs competitors

Respond with a JSON object containing:
{{
  "overallSentiment": "positive|neutral|negative",
  "competitorAnalysis": {{
    "marketPosition": "leader|challenger|follower|niche",
    "strengthsVsCompetitors": ["strength1", "strength2"],
    "improvementAreas": ["area1", "area2"]
  }},
  "recommendations": [
    {{
      "category": "reputation|social|seo|reviews|content",
      "priority": "high|medium|low",
      "title": "Recommendation title",
      "description": "Detailed description",
      "estimatedImpact": "Expected impact",
      "timeframe": "Implementation timeframe"
    }}
  ]
}}
"""


def scrape_website_signals(website: str, timeout: int = 10) -> Dict[str, Any]:
    """Presence signals read from the homepage HTML. Unreachable sites get UNAVAILABLE_SIGNALS."""
    try:
        response = requests.get(website, headers={'User-Agent': USER_AGENT}, timeout=timeout)
        response.raise_for_status()
        html = response.text
    except requests.RequestException as e:
        logger.warning(f"Website scrape failed for {website}: {e}")
        return dict(UNAVAILABLE_SIGNALS, industryListings=[])

    lowered = html.lower()
    return {
        'hasSSL': website.startswith('https://'),
        'hasBlogSection': 'blog' in lowered or 'news' in lowered,
        'hasContactForm': 'contact' in lowered and ('<form' in html or 'contact-form' in html),
        'hasTestimonials': 'testimonial' in lowered or 'review' in lowered,
        'hasSocialLinks': any(site in html for site in ('facebook.com', 'linkedin.com', 'instagram.com')),
        'industryListings': [f"Found {keyword} references" for keyword in INDUSTRY_KEYWORDS if keyword in lowered],
        'pageLoadSpeed': 'good',
        'mobileOptimized': 'viewport' in html and 'responsive' in html,
    }


def media_mentions(business_type: str) -> Dict[str, Any]:
    """Sample press coverage; no news API is wired in."""
    label = (business_type or 'rental').replace('_', ' ')
    return {
        'articles': [
            {
                'title': f"Local {label} company expands operations",
                'source': 'Local Business Journal',
                'date': '15 days ago',
                'sentiment': 'positive',
            },
            {
                'title': 'Industry outlook remains strong for equipment rentals',
                'source': 'Industry Weekly',
                'date': '1 month ago',
                'sentiment': 'neutral',
            },
        ],
        'mentionCount': random.randint(5, 24),
        'sentimentBreakdown': {'positive': 0.6, 'neutral': 0.3, 'negative': 0.1},
    }


def calculate_reputation_score(reviews: Optional[Dict], social: Optional[Dict],
                               web_presence: Optional[Dict]) -> int:
    """
    Combine review, web and social signals into a 0-100 score.

    20 base points, up to 40 from Google rating and volume, up to 20 from web
    presence, 5 for an operational listing, 5 for real Google data and up to
    10 from social audience.
    """
    reviews = reviews or {}
    score = 20.0

    google = reviews.get('google') or {}
    rating = google.get('rating')
    count = google.get('reviewCount')
    if rating and count:
        score += (rating / 5) * 30 * min(count / 50, 1)
        score += min(count / 10, 10)

    features = sum(1 for value in (web_presence or {}).values() if value)
    score += (features / WEB_FEATURE_COUNT) * 20

    if (reviews.get('businessInfo') or {}).get('businessStatus') == 'OPERATIONAL':
        score += 5
    if reviews.get('dataSource') == 'google_places':
        score += 5

    social = social or {}
    followers = (social.get('facebook') or {}).get('followers') or 0
    connections = (social.get('linkedin') or {}).get('connections') or 0
    if followers > 0 or connections > 0:
        score += min((followers + connections * 2) / 10000, 1) * 10

    return int(round(max(min(score, 100), 0)))


def fallback_intelligence() -> Dict[str, Any]:
    """Payload used when intelligence gathering fails or times out."""
    return {
        'reputationScore': 75 + random.randint(0, 19),
        'googleReviews': {'rating': None, 'reviewCount': None, 'recentReviews': []},
        'socialMedia': {
            'facebook': {'followers': None, 'engagement': None, 'lastPost': None, 'verified': None},
            'linkedin': {'connections': None, 'employees': None, 'verified': None},
        },
        'onlinePresence': {'industryListings': [], 'newsArticles': []},
        'competitorAnalysis': {
            'marketPosition': 'challenger',
            'strengthsVsCompetitors': [],
            'improvementAreas': [],
        },
        'recommendations': [],
        'overallSentiment': 'neutral',
        'lastUpdated': datetime.utcnow().isoformat(),
    }


def sample_reputation(business_name: str, location: str = None) -> Dict[str, Any]:
    """Demo reputation report. No external calls are made."""
    return {
        'businessName': business_name,
        'location': location,
        'overallScore': 4.2,
        'totalReviews': 127,
        'platformBreakdown': {
            'google': {'rating': 4.3, 'reviews': 67},
            'yelp': {'rating': 4.0, 'reviews': 34},
            'facebook': {'rating': 4.4, 'reviews': 26},
        },
        'sentimentAnalysis': {'positive': 72, 'neutral': 21, 'negative': 7},
        'keyStrengths': [
            'Reliable equipment delivery',
            'Professional customer service',
            'Competitive pricing',
            'Well-maintained equipment',
        ],
        'keyWeaknesses': ['Occasional delivery delays', 'Limited weekend availability'],
        'recentTrends': {
            'trend': 'improving',
            'monthlyChange': 0.3,
            'description': 'Ratings have improved over the past 3 months',
        },
        'competitorComparison': {'averageIndustry': 3.8, 'position': 'above_average'},
        'actionableInsights': [
            {
                'priority': 'high',
                'issue': 'Address delivery timing concerns',
                'impact': 'Could improve rating by 0.2-0.4 points',
                'suggestions': [
                    'Implement real-time delivery tracking',
                    'Send proactive delay notifications',
                ],
            },
            {
                'priority': 'medium',
                'issue': 'Expand weekend service availability',
                'impact': 'Could increase customer satisfaction by 15%',
                'suggestions': ['Test weekend delivery pilot program', 'Survey customers for weekend demand'],
            },
        ],
        'prStrategy': {
            'quickWins': [
                'Respond to all unaddressed reviews within 24 hours',
                'Create template responses for common concerns',
                'Encourage satisfied customers to leave reviews',
            ],
            'responseTemplates': {
                'negative': ("Thank you for your feedback. We take all concerns seriously and would like "
                             "to make this right. Please contact us directly so we can resolve this issue."),
                'positive': ("Thank you for the wonderful review! We're thrilled that you had a great "
                             "experience with our equipment and service."),
            },
        },
    }


class WebIntelligenceService:
    """Gathers signals from each source; any source may come back empty."""

    def __init__(self, ai_service=None, places_client=None, facebook_client=None, timeout: int = 10):
        self.ai_service = ai_service
        self.places_client = places_client
        self.facebook_client = facebook_client
        self.timeout = timeout

    def _reviews(self, business_name: str, address: str = None) -> Dict[str, Any]:
        if self.places_client is not None:
            found = self.places_client.business_reviews(business_name, address)
            if found:
                return found
        return {
            'google': {'rating': None, 'reviewCount': None, 'recentReviews': []},
            'dataSource': None,
        }

    def _social(self, business_name: str, address: str = None) -> Dict[str, Any]:
        if self.facebook_client is not None:
            found = self.facebook_client.business_social_media(business_name, address)
            if found:
                return found
        return {
            'facebook': {'followers': None, 'verified': None},
            'linkedin': {'connections': None, 'employees': None, 'verified': None},
            'dataSource': None,
        }

    def _ai_analysis(self, business_name: str, business_type: str, web: Dict, social: Dict,
                     reviews: Dict, media: Dict) -> Dict[str, Any]:
        if self.ai_service is None or not self.ai_service.is_available('claude'):
            return DEFAULT_AI_ANALYSIS
        prompt = ANALYSIS_PROMPT.format(
            business_type=(business_type or 'rental').replace('_', ' '),
            business_name=business_name,
            web=json.dumps(web),
            social=json.dumps(social, default=str),
            reviews=json.dumps(reviews, default=str),
            media=json.dumps(media),
        )
        try:
            analysis = self.ai_service.complete_json(prompt, model_key='claude_fast')
        except AIServiceError as e:
            logger.warning(f"AI reputation analysis failed, using defaults: {e}")
            return DEFAULT_AI_ANALYSIS
        return {
            'overallSentiment': analysis.get('overallSentiment') or DEFAULT_AI_ANALYSIS['overallSentiment'],
            'competitorAnalysis': analysis.get('competitorAnalysis') or DEFAULT_AI_ANALYSIS['competitorAnalysis'],
            'recommendations': analysis.get('recommendations') or DEFAULT_AI_ANALYSIS['recommendations'],
        }

    def gather(self, business_name: str, website: str, phone: str = None,
               address: str = None, business_type: str = None) -> Dict[str, Any]:
        logger.info(f"Starting web intelligence for: {business_name}")

        web = scrape_website_signals(website, self.timeout)
        social = self._social(business_name, address)
        reviews = self._reviews(business_name, address)
        media = media_mentions(business_type)
        analysis = self._ai_analysis(business_name, business_type, web, social, reviews, media)
        score = calculate_reputation_score(reviews, social, web)

        facebook = social.get('facebook') or {}
        linkedin = social.get('linkedin') or {}
        result = {
            'reputationScore': score,
            'googleReviews': reviews['google'],
            'socialMedia': {
                'facebook': {
                    'followers': facebook.get('followers') or None,
                    'engagement': facebook.get('engagement') or None,
                    'lastPost': facebook.get('lastPost') or None,
                    'verified': facebook.get('verified') or None,
                },
                'linkedin': {
                    'connections': linkedin.get('connections') or None,
                    'employees': linkedin.get('employees') or None,
                    'verified': linkedin.get('verified') or None,
                },
            },
            'onlinePresence': {
                'industryListings': web['industryListings'],
                'newsArticles': media['articles'],
            },
            'competitorAnalysis': analysis['competitorAnalysis'],
            'recommendations': analysis['recommendations'],
            'overallSentiment': analysis['overallSentiment'],
            'lastUpdated': datetime.utcnow().isoformat(),
        }
        if reviews.get('businessInfo'):
            result['businessInfo'] = reviews['businessInfo']

        logger.info(f"Web intelligence complete for {business_name}: reputation score {score}")
        return result

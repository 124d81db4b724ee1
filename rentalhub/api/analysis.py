"""
Business Analysis API Routes Blueprint

- /api/analyze-business - onboard a business from its website
- /api/web-intelligence - reviews, social reach and reputation score
- /api/analyze-reputation - sample reputation payload for demos
"""

import logging
from flask import Blueprint, current_app

from services.business_analysis import DEFAULT_ANALYSIS, BusinessAnalyzer
from services.errors import RentalHubError, ValidationError
from services.facebook_client import FacebookClient
from services.places_client import PlacesClient
from services.web_intelligence import WebIntelligenceService, sample_reputation
from rentalhub.utils.helpers import error_response, fallback_store, get_json_body, success
from validators import format_error_response

logger = logging.getLogger(__name__)

analysis_bp = Blueprint('analysis_bp', __name__)


def _intelligence_service():
    config = current_app.config
    timeout = config.get('WEB_INTELLIGENCE_TIMEOUT', 10)
    return WebIntelligenceService(
        ai_service=getattr(current_app, 'ai_service', None),
        places_client=PlacesClient(config.get('GOOGLE_PLACES_API_KEY'), timeout=timeout),
        facebook_client=FacebookClient(config.get('FACEBOOK_APP_ID'), config.get('FACEBOOK_APP_SECRET'),
                                       timeout=timeout),
        timeout=timeout
    )


@analysis_bp.route('/api/analyze-business', methods=['POST'])
def analyze_business():
    try:
        data = get_json_body()
        analyzer = BusinessAnalyzer(
            current_app.config,
            ai_service=getattr(current_app, 'ai_service', None),
            intelligence_service=_intelligence_service(),
            fallback_store=fallback_store()
        )
        profile = analyzer.analyze(
            data.get('websiteUrl'),
            logo_url=data.get('logoUrl'),
            create_sample_data=bool(data.get('createSampleData'))
        )
        return success(profile)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Business analysis error: {e}")
        body = format_error_response('Failed to analyze business', data=dict(DEFAULT_ANALYSIS))
        return body, 500


@analysis_bp.route('/api/web-intelligence', methods=['POST'])
def web_intelligence():
    try:
        data = get_json_body()
        if not data.get('businessName') or not data.get('website'):
            raise ValidationError('Business name and website are required')
        result = _intelligence_service().gather(
            data['businessName'], data['website'],
            phone=data.get('phone'),
            address=data.get('address'),
            business_type=data.get('businessType')
        )
        return success(result)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Web intelligence error: {e}")
        return format_error_response('Failed to gather web intelligence'), 500


@analysis_bp.route('/api/analyze-reputation', methods=['POST'])
def analyze_reputation():
    try:
        data = get_json_body()
        if not data.get('businessName'):
            raise ValidationError('Business name is required', field='businessName')
        return success(sample_reputation(data['businessName'], data.get('location')))
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Reputation analysis error: {e}")
        return format_error_response('Failed to analyze reputation'), 500

"""
Tests for website-driven business analysis
"""
import pytest
import requests
from unittest.mock import Mock, patch

from ai_service import AIServiceError
from services.business_analysis import (
    BusinessAnalyzer,
    analyze_content,
    business_name_from_domain,
    extract_website_content,
)
from services.errors import ValidationError

CONFIG = {'HTTP_TIMEOUT': 5, 'WEB_INTELLIGENCE_TIMEOUT': 2}

HOMEPAGE = (
    '<html><head><title>Big Iron Rentals</title>'
    '<meta name="description" content="Excavator and crane rentals">'
    '<script>var tracking = "alert";</script><style>body {color: red}</style></head>'
    '<body><h1>Welcome</h1><h2>Our <b>Fleet</b></h2>'
    '<p>Call (512) 555-0199 or email sales@bigiron.com</p></body></html>'
)


def _available_ai(reply=None, error=None):
    ai = Mock()
    ai.is_available.return_value = True
    if error:
        ai.complete_json.side_effect = error
    else:
        ai.complete_json.return_value = reply
    return ai


@pytest.mark.unit
class TestContentHelpers:
    """Tests for HTML extraction and keyword profiling"""

    def test_extract_prioritizes_headings(self):
        """Test that title, description and headings lead the extracted text"""
        content = extract_website_content(HOMEPAGE)

        assert content.startswith(
            'TITLE: Big Iron Rentals DESCRIPTION: Excavator and crane rentals '
            'HEADING: Welcome SUBHEADING: Our Fleet CONTENT:'
        )
        assert 'tracking' not in content
        assert 'color: red' not in content
        assert 'sales@bigiron.com' in content

    def test_extract_truncates(self):
        """Test that extracted content is capped at 5000 characters"""
        assert len(extract_website_content('<p>' + 'x' * 9000 + '</p>')) == 5000

    def test_name_from_domain(self):
        """Test that domains become readable business names"""
        assert business_name_from_domain('www.acme-rentals.com') == 'Acme-rentals'
        assert business_name_from_domain('big.iron.net') == 'Big Iron'

    def test_analyze_content_finds_contacts(self):
        """Test keyword type detection and contact extraction"""
        profile = analyze_content('We rent excavators. Call (512) 555-0199 or sales@bigiron.com', 'bigiron.com')

        assert profile['type'] == 'heavy_equipment'
        assert profile['industry'] == 'Construction Equipment Rental'
        assert profile['email'] == 'sales@bigiron.com'
        assert profile['phone'] == '(512) 555-0199'
        assert profile['branding']['primaryColor'] == '#FF6600'
        assert profile['confidence'] == 70

    def test_analyze_content_defaults(self):
        """Test the profile for a page with nothing recognizable"""
        profile = analyze_content('', 'quiet.org')

        assert profile['name'] == 'Quiet'
        assert profile['type'] == 'custom'
        assert profile['email'] == 'contact@quiet.org'
        assert profile['phone'] == '+1-555-000-0000'

    def test_rich_content_raises_confidence(self):
        """Test that long pages are analyzed with higher confidence"""
        assert analyze_content('tent ' * 200, 'party.com')['confidence'] == 85


@pytest.mark.unit
class TestBusinessAnalyzer:
    """Tests for BusinessAnalyzer steps"""

    @patch('services.business_analysis.requests.get')
    def test_scrape(self, mock_get):
        """Test that the scrape uses the configured timeout"""
        mock_get.return_value = Mock(text=HOMEPAGE)

        content = BusinessAnalyzer(CONFIG).scrape('https://bigiron.com')

        assert content.startswith('TITLE: Big Iron Rentals')
        assert mock_get.call_args.kwargs['timeout'] == 5

    @patch('services.business_analysis.requests.get')
    def test_scrape_failure_is_empty(self, mock_get):
        """Test that an unreachable site yields no content"""
        mock_get.side_effect = requests.ConnectionError('refused')
        assert BusinessAnalyzer(CONFIG).scrape('https://down.example') == ''

    def test_ai_profile_fills_custom_fields(self):
        """Test that the AI profile receives preset custom fields"""
        ai = _available_ai({'name': 'Big Iron', 'type': 'heavy_equipment'})

        profile = BusinessAnalyzer(CONFIG, ai_service=ai).ai_profile('https://bigiron.com', 'content')

        assert profile['name'] == 'Big Iron'
        assert profile['branding'] == {}
        assert profile['customFields'][0]['name'] == 'Make'

    def test_ai_profile_coerces_malformed_fields(self):
        """Test that null or mistyped AI fields are replaced with usable defaults"""
        ai = _available_ai({
            'name': 'Acme', 'type': 'spaceships', 'branding': None,
            'features': 'drills', 'customFields': None, 'confidence': 'high',
        })

        profile = BusinessAnalyzer(CONFIG, ai_service=ai).ai_profile('https://acme.com', 'content')

        assert profile['type'] == 'custom'
        assert profile['branding'] == {}
        assert isinstance(profile['features'], list)
        assert isinstance(profile['customFields'], list)
        assert profile['confidence'] == 70

    @patch('services.business_analysis.store_business')
    @patch('services.business_analysis.requests.get')
    def test_analyze_with_null_ai_branding_and_logo(self, mock_get, mock_store):
        """Test that a logo is attached even when the AI returned no branding"""
        mock_get.return_value = Mock(text=HOMEPAGE)
        mock_store.return_value = ({'id': 'biz_acme'}, 'database')
        ai = _available_ai({'name': 'Acme', 'type': 'tool_rental', 'branding': None})

        profile = BusinessAnalyzer(CONFIG, ai_service=ai).analyze(
            'https://acme.com', logo_url='https://cdn/acme.png'
        )

        assert profile['name'] == 'Acme'
        assert profile['branding'] == {'logoUrl': 'https://cdn/acme.png'}
        assert profile['storage'] == 'database'

    def test_ai_profile_skipped_without_content(self):
        """Test that the AI is not asked about an empty page"""
        ai = _available_ai({'name': 'Big Iron'})

        assert BusinessAnalyzer(CONFIG, ai_service=ai).ai_profile('https://bigiron.com', '') is None
        ai.complete_json.assert_not_called()

    def test_ai_profile_error(self):
        """Test that an AI failure yields no profile"""
        ai = _available_ai(error=AIServiceError('timeout'))
        assert BusinessAnalyzer(CONFIG, ai_service=ai).ai_profile('https://bigiron.com', 'text') is None

    def test_web_intelligence_result(self):
        """Test that gathered intelligence is returned as is"""
        intelligence = Mock()
        intelligence.gather.return_value = {'reputationScore': 91}

        result = BusinessAnalyzer(CONFIG, intelligence_service=intelligence).web_intelligence(
            {'name': 'Big Iron', 'type': 'heavy_equipment'}, 'https://bigiron.com'
        )

        assert result == {'reputationScore': 91}
        intelligence.gather.assert_called_once_with(
            'Big Iron', 'https://bigiron.com', None, None, 'heavy_equipment'
        )

    def test_web_intelligence_failure_falls_back(self):
        """Test that a failed lookup returns fallback intelligence"""
        intelligence = Mock()
        intelligence.gather.side_effect = RuntimeError('boom')

        result = BusinessAnalyzer(CONFIG, intelligence_service=intelligence).web_intelligence(
            {'name': 'Big Iron'}, 'https://bigiron.com'
        )

        assert 75 <= result['reputationScore'] <= 94

    def test_analyze_requires_url(self):
        """Test that a website URL is required"""
        with pytest.raises(ValidationError) as exc:
            BusinessAnalyzer(CONFIG).analyze('')
        assert exc.value.message == 'Website URL is required'

    def test_analyze_rejects_url_without_host(self):
        """Test that a URL without a host is rejected"""
        with pytest.raises(ValidationError):
            BusinessAnalyzer(CONFIG).analyze('not a url')

    @patch('services.business_analysis.store_business')
    @patch('services.business_analysis.requests.get')
    def test_analyze_stores_profile(self, mock_get, mock_store):
        """Test the full analysis with keyword profiling and storage"""
        mock_get.return_value = Mock(text=HOMEPAGE)
        mock_store.return_value = ({'id': 'biz_abc'}, 'database')

        profile = BusinessAnalyzer(CONFIG).analyze('https://www.bigiron.com', logo_url='https://cdn/logo.png')

        assert profile['id'] == 'biz_abc'
        assert profile['storage'] == 'database'
        assert profile['type'] == 'heavy_equipment'
        assert profile['branding']['logoUrl'] == 'https://cdn/logo.png'
        assert profile['website'] == 'https://www.bigiron.com'
        assert 'reputationScore' in profile['webIntelligence']

    @patch('services.business_analysis.store_business')
    @patch('services.business_analysis.requests.get')
    def test_analyze_storage_failure(self, mock_get, mock_store):
        """Test that a storage failure still returns the profile"""
        mock_get.return_value = Mock(text=HOMEPAGE)
        mock_store.side_effect = OSError('disk full')

        profile = BusinessAnalyzer(CONFIG).analyze('https://bigiron.com')

        assert profile['storage'] == 'none'
        assert profile['id'].startswith('biz_')


@pytest.mark.integration
class TestAnalyzeBusinessRoute:
    """Tests for /api/analyze-business"""

    @patch('services.business_analysis.requests.get')
    def test_analyze_and_store(self, mock_get, client):
        """Test that an analyzed business is stored and readable"""
        mock_get.return_value = Mock(text=HOMEPAGE)

        response = client.post('/api/analyze-business', json={'websiteUrl': 'https://bigiron.com'})

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['storage'] == 'database'
        assert data['type'] == 'heavy_equipment'
        fetched = client.get(f"/api/businesses/{data['id']}").get_json()['data']
        assert fetched['name'] == 'Bigiron'

    def test_missing_url(self, client):
        """Test that the URL is required"""
        response = client.post('/api/analyze-business', json={})
        assert response.status_code == 400

    @patch('services.business_analysis.BusinessAnalyzer.analyze', side_effect=RuntimeError('boom'))
    def test_unexpected_error_returns_default(self, mock_analyze, client):
        """Test that unexpected failures answer 500 with the default analysis"""
        response = client.post('/api/analyze-business', json={'websiteUrl': 'https://bigiron.com'})

        assert response.status_code == 500
        body = response.get_json()
        assert body['success'] is False
        assert body['data']['name'] == 'Analysis Unavailable'

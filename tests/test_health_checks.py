"""
Tests for health check endpoints
"""
import pytest
import time
import psutil
from unittest.mock import Mock, patch
from health_checks import (
    get_system_metrics,
    get_uptime,
    check_integrations,
    check_database,
    check_filesystem,
)


@pytest.mark.unit
class TestSystemMetrics:
    """Tests for system metrics collection"""

    def test_system_metrics_has_cpu_and_memory(self):
        """Test that system metrics includes CPU and memory info"""
        metrics = get_system_metrics()
        assert isinstance(metrics, dict)
        if metrics:
            assert isinstance(metrics['cpu_percent'], (int, float))
            assert 'memory_mb' in metrics

    @patch('health_checks.psutil.Process')
    def test_system_metrics_handles_errors(self, mock_process):
        """Test that psutil failures produce an empty dict"""
        mock_process.side_effect = psutil.AccessDenied()
        assert get_system_metrics() == {}


@pytest.mark.unit
class TestUptime:
    """Tests for uptime calculation"""

    def test_uptime_has_required_fields(self):
        """Test that uptime includes all required fields"""
        uptime = get_uptime()
        for key in ('uptime_seconds', 'uptime_minutes', 'uptime_hours', 'started_at'):
            assert key in uptime

    def test_uptime_increases_over_time(self):
        """Test that uptime increases over time"""
        uptime1 = get_uptime()
        time.sleep(0.05)
        uptime2 = get_uptime()
        assert uptime2['uptime_seconds'] > uptime1['uptime_seconds']


@pytest.mark.unit
class TestIntegrationsCheck:
    """Tests for integration credential checks"""

    def test_check_integrations_with_all_keys(self):
        """Test integrations check when every credential is present"""
        mock_app = Mock()
        mock_app.config = {
            'ANTHROPIC_API_KEY': 'key',
            'STRIPE_SECRET_KEY': 'sk_test',
            'STRIPE_WEBHOOK_SECRET': 'whsec',
            'GOOGLE_PLACES_API_KEY': 'key',
            'FACEBOOK_APP_ID': 'id',
            'FACEBOOK_APP_SECRET': 'secret',
            'TWILIO_ACCOUNT_SID': 'AC1',
            'TWILIO_AUTH_TOKEN': 'token',
        }

        assert all(check_integrations(mock_app).values())

    def test_check_integrations_with_no_keys(self):
        """Test integrations check when no credentials are present"""
        mock_app = Mock()
        mock_app.config = {}

        assert not any(check_integrations(mock_app).values())

    def test_facebook_needs_id_and_secret(self):
        """Test that the Graph API needs both app id and secret"""
        mock_app = Mock()
        mock_app.config = {'FACEBOOK_APP_ID': 'id', 'ANTHROPIC_API_KEY': 'key'}

        integrations = check_integrations(mock_app)

        assert integrations['anthropic_claude'] is True
        assert integrations['facebook_graph'] is False


@pytest.mark.unit
class TestDatabaseCheck:
    """Tests for database connectivity check"""

    @patch('health_checks.check_db_connection')
    def test_check_database_healthy(self, mock_check):
        """Test database check when the connection works"""
        mock_check.return_value = True
        assert check_database() == {'healthy': True}

    @patch('health_checks.check_db_connection')
    def test_check_database_unreachable(self, mock_check):
        """Test database check reports the connection error"""
        mock_check.side_effect = RuntimeError('Cannot connect to database: refused')
        result = check_database()
        assert result['healthy'] is False
        assert 'refused' in result['error']


@pytest.mark.unit
class TestFilesystemCheck:
    """Tests for filesystem availability check"""

    def test_check_filesystem_existing_folder(self, tmp_path):
        """Test filesystem check when the fallback folder exists"""
        mock_app = Mock()
        mock_app.config = {'FALLBACK_DATA_FOLDER': str(tmp_path)}

        filesystem = check_filesystem(mock_app)

        assert filesystem['fallback_data']['exists'] is True
        assert filesystem['fallback_data']['healthy'] is True

    def test_check_filesystem_directory_missing(self, tmp_path):
        """Test filesystem check when the folder is missing"""
        mock_app = Mock()
        mock_app.config = {'FALLBACK_DATA_FOLDER': str(tmp_path / 'missing')}

        filesystem = check_filesystem(mock_app)

        assert filesystem['fallback_data']['exists'] is False
        assert filesystem['fallback_data']['healthy'] is False

    @patch('os.access')
    def test_check_filesystem_directory_not_writable(self, mock_access, tmp_path):
        """Test filesystem check when the folder is not writable"""
        mock_access.return_value = False
        mock_app = Mock()
        mock_app.config = {'FALLBACK_DATA_FOLDER': str(tmp_path)}

        filesystem = check_filesystem(mock_app)

        assert filesystem['fallback_data']['writable'] is False
        assert filesystem['fallback_data']['healthy'] is False


@pytest.mark.integration
class TestHealthCheckEndpoints:
    """Integration tests for health check endpoints"""

    def test_health_endpoint_returns_200(self, client):
        """Test that /health endpoint returns healthy JSON"""
        response = client.get('/api/health')
        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'healthy'
        assert data['service'] == 'rentalhub'
        assert 'timestamp' in data

    def test_ping_endpoint_returns_pong(self, client):
        """Test that /ping endpoint returns 'pong'"""
        response = client.get('/api/ping')
        assert response.status_code == 200
        assert response.data == b'pong'

    def test_ready_endpoint_reports_checks(self, client):
        """Test that /ready is ready over SQLite with a writable fallback folder"""
        response = client.get('/api/ready')
        data = response.get_json()
        assert response.status_code == 200
        assert data['status'] == 'ready'
        assert data['checks']['database']['healthy'] is True
        assert 'integrations' in data['checks']

    @patch('health_checks.check_db_connection')
    def test_ready_endpoint_503_without_database(self, mock_check, client):
        """Test that /ready answers 503 when the database is down"""
        mock_check.side_effect = RuntimeError('Cannot connect to database')
        response = client.get('/api/ready')
        assert response.status_code == 503
        assert response.get_json()['status'] == 'not_ready'

    def test_metrics_endpoint_has_uptime_and_version(self, client):
        """Test that /metrics includes uptime, version and integrations"""
        response = client.get('/api/metrics')
        assert response.status_code == 200
        data = response.get_json()
        assert 'uptime_seconds' in data['uptime']
        assert data['version'] == '1.0.0'
        assert data['integrations']['stripe'] is False

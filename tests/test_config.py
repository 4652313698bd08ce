"""
Tests for configuration system
"""
import os
import pytest
from config import (
    Config,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config
)


@pytest.mark.unit
class TestBaseConfig:
    """Tests for base configuration"""

    def test_base_config_has_secret_key(self):
        """Test that base config has a secret key"""
        config = Config()
        assert hasattr(config, 'SECRET_KEY')
        assert config.SECRET_KEY is not None

    def test_base_config_has_max_content_length(self):
        """Test that base config has max content length"""
        config = Config()
        assert config.MAX_CONTENT_LENGTH == 50 * 1024 * 1024

    def test_base_config_has_upload_limit(self):
        """Test that single images are limited to 5MB by default"""
        assert Config.MAX_UPLOAD_SIZE == 5 * 1024 * 1024

    def test_base_config_has_cors_settings(self):
        """Test that base config has CORS settings"""
        config = Config()
        assert hasattr(config, 'CORS_ORIGINS')
        assert 'PATCH' in config.CORS_METHODS
        assert 'Authorization' in config.CORS_ALLOW_HEADERS

    def test_base_config_has_jwt_settings(self):
        """Test that tokens default to HS256 and seven days"""
        assert Config.JWT_ALGORITHM == 'HS256'
        assert Config.JWT_EXPIRES_IN == os.environ.get('JWT_EXPIRES_IN', '7d')

    def test_base_config_has_storage_folders(self):
        """Test the local upload and invoice folders"""
        assert Config.UPLOAD_FOLDER == os.environ.get('UPLOAD_FOLDER', 'uploads')
        assert Config.INVOICE_FOLDER == os.environ.get('INVOICE_FOLDER', 'invoices')

    def test_base_config_has_business_details(self):
        """Test that business details printed on invoices are present"""
        assert Config.SHOP_NAME
        assert Config.BUSINESS_PHONE
        assert Config.BUSINESS_EMAIL


@pytest.mark.unit
class TestEnvironmentConfigs:
    """Tests for environment-specific configurations"""

    def test_development_config(self):
        """Test development configuration"""
        assert DevelopmentConfig.DEBUG is True
        assert DevelopmentConfig.TESTING is False
        assert DevelopmentConfig.JWT_SECRET

    def test_production_config(self):
        """Test production configuration"""
        assert ProductionConfig.DEBUG is False
        assert ProductionConfig.SESSION_COOKIE_SECURE is True
        assert ProductionConfig.PREFERRED_URL_SCHEME == 'https'

    def test_testing_config(self):
        """Test testing configuration uses memory DB and no scheduler"""
        assert TestingConfig.TESTING is True
        assert TestingConfig.DATABASE_URL == 'sqlite:///:memory:'
        assert TestingConfig.SCHEDULER_ENABLED is False

    def test_testing_config_never_uses_s3(self):
        """Test that testing config has no AWS credentials"""
        assert TestingConfig.AWS_ACCESS_KEY_ID is None
        assert TestingConfig.AWS_SECRET_ACCESS_KEY is None


@pytest.mark.unit
class TestConfigSelection:
    """Tests for configuration selection"""

    def test_get_config_testing(self, test_env_vars):
        """Test FLASK_ENV=testing selects TestingConfig"""
        os.environ['FLASK_ENV'] = 'testing'
        assert get_config() is TestingConfig

    def test_get_config_production(self, test_env_vars):
        """Test FLASK_ENV=production selects ProductionConfig"""
        os.environ['FLASK_ENV'] = 'production'
        assert get_config() is ProductionConfig

    def test_get_config_unknown_defaults_to_development(self, test_env_vars):
        """Test unknown environments fall back to development"""
        os.environ['FLASK_ENV'] = 'staging'
        assert get_config() is DevelopmentConfig

"""
Tests for environment loading and Firestore connection settings.
"""

import os
import tempfile
import unittest

from jobfinder_sync.config.env_loader import (
    EnvironmentConfigError,
    get_firestore_settings,
    get_optional_env_var,
    get_required_env_var,
    is_emulator,
    load_environment,
)


class TestEnvironmentLoader(unittest.TestCase):
    """Test cases for the environment loader."""

    def setUp(self):
        """Set up test by clearing environment variables."""
        self.original_env = os.environ.copy()
        for var in ['GCP_PROJECT_ID', 'GCLOUD_PROJECT', 'GOOGLE_APPLICATION_CREDENTIALS', 'FIRESTORE_EMULATOR_HOST']:
            os.environ.pop(var, None)

    def tearDown(self):
        """Restore original environment."""
        os.environ.clear()
        os.environ.update(self.original_env)

    def test_get_required_env_var_success(self):
        os.environ['TEST_VAR'] = 'test_value'
        self.assertEqual(get_required_env_var('TEST_VAR', 'Test variable'), 'test_value')

    def test_get_required_env_var_missing(self):
        """Test error when required environment variable is missing."""
        with self.assertRaises(EnvironmentConfigError) as cm:
            get_required_env_var('GCP_PROJECT_ID', 'Project')
        self.assertIn('GCP_PROJECT_ID', str(cm.exception))
        self.assertIn('Hint', str(cm.exception))

    def test_get_required_env_var_empty(self):
        os.environ['EMPTY_VAR'] = ''
        with self.assertRaises(EnvironmentConfigError):
            get_required_env_var('EMPTY_VAR')

    def test_get_optional_env_var(self):
        self.assertEqual(get_optional_env_var('UNSET_VAR', 'default_value'), 'default_value')
        os.environ['UNSET_VAR'] = 'set'
        self.assertEqual(get_optional_env_var('UNSET_VAR', 'default_value'), 'set')

    def test_firestore_settings_require_project(self):
        with self.assertRaises(EnvironmentConfigError):
            get_firestore_settings()

    def test_firestore_settings_with_project(self):
        os.environ['GCP_PROJECT_ID'] = 'jobfinder-prod'

        settings = get_firestore_settings()

        self.assertEqual(settings, {
            'project_id': 'jobfinder-prod',
            'credentials_path': '',
            'emulator_host': '',
        })
        self.assertFalse(is_emulator())

    def test_emulator_defaults_project(self):
        """Test the emulator does not need a real project id."""
        os.environ['FIRESTORE_EMULATOR_HOST'] = 'localhost:8080'

        settings = get_firestore_settings()

        self.assertEqual(settings['project_id'], 'demo-project')
        self.assertEqual(settings['emulator_host'], 'localhost:8080')
        self.assertTrue(is_emulator())

    def test_missing_credentials_file(self):
        os.environ['GCP_PROJECT_ID'] = 'jobfinder-prod'
        os.environ['GOOGLE_APPLICATION_CREDENTIALS'] = '/nonexistent/key.json'

        with self.assertRaises(EnvironmentConfigError) as cm:
            get_firestore_settings()
        self.assertIn('does not exist', str(cm.exception))

    def test_existing_credentials_file(self):
        with tempfile.NamedTemporaryFile(suffix='.json', delete=False) as f:
            f.write(b'{}')
        self.addCleanup(os.unlink, f.name)
        os.environ['GCP_PROJECT_ID'] = 'jobfinder-prod'
        os.environ['GOOGLE_APPLICATION_CREDENTIALS'] = f.name

        self.assertEqual(get_firestore_settings()['credentials_path'], f.name)

    def test_load_environment_from_file(self):
        """Test loading variables from an explicit .env file."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.env', delete=False) as f:
            f.write('GCLOUD_PROJECT=from-dotenv\n')
        self.addCleanup(os.unlink, f.name)

        load_environment(f.name)

        self.assertEqual(os.environ['GCLOUD_PROJECT'], 'from-dotenv')

    def test_load_environment_missing_file_is_ignored(self):
        load_environment('/nonexistent/.env')
        self.assertNotIn('GCLOUD_PROJECT', os.environ)


if __name__ == "__main__":
    unittest.main()

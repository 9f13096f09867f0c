import os
import unittest
from unittest import mock

from resi_app.core.settings import Settings


class TestSettings(unittest.TestCase):
    def test_unset_environment_is_production(self):
        with mock.patch.dict(os.environ):
            os.environ.pop("ENVIRONMENT", None)
            configured = Settings(_env_file=None)
        self.assertEqual(configured.ENVIRONMENT, "production")
        self.assertFalse(configured.is_development)

    def test_environment_comes_from_env(self):
        with mock.patch.dict(os.environ, {"ENVIRONMENT": "development"}):
            configured = Settings(_env_file=None)
        self.assertTrue(configured.is_development)


if __name__ == "__main__":
    unittest.main()

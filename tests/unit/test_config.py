# File: tests/unit/test_config.py
"""
Unit tests for environment-driven settings.
"""

import unittest

from pydantic import ValidationError

from mallpark.infrastructure.config import Settings


class TestSettings(unittest.TestCase):

    def test_defaults(self):
        settings = Settings.from_env({})

        self.assertEqual(settings.database_url, "sqlite:///./mallpark.db")
        self.assertIsNone(settings.redis_url)
        self.assertEqual(settings.port, 5000)
        self.assertEqual(settings.cors_origins, ["*"])
        self.assertTrue(settings.seed_on_startup)

    def test_values_from_environment(self):
        settings = Settings.from_env({
            "MALLPARK_DATABASE_URL": "postgresql://parking@db/mallpark",
            "MALLPARK_REDIS_URL": "redis://cache:6379/0",
            "MALLPARK_PORT": "8080",
            "MALLPARK_LOG_LEVEL": "debug",
            "MALLPARK_CORS_ORIGINS": "http://localhost:3000, https://mall.example",
            "MALLPARK_SEED_ON_STARTUP": "false",
            "UNRELATED": "ignored",
        })

        self.assertEqual(settings.database_url, "postgresql://parking@db/mallpark")
        self.assertEqual(settings.redis_url, "redis://cache:6379/0")
        self.assertEqual(settings.port, 8080)
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.cors_origins, ["http://localhost:3000", "https://mall.example"])
        self.assertFalse(settings.seed_on_startup)

    def test_empty_values_keep_defaults(self):
        settings = Settings.from_env({"MALLPARK_PORT": ""})
        self.assertEqual(settings.port, 5000)

    def test_invalid_values(self):
        for environ in ({"MALLPARK_LOG_LEVEL": "loud"}, {"MALLPARK_PORT": "0"}):
            with self.subTest(environ=environ):
                with self.assertRaises(ValidationError):
                    Settings.from_env(environ)


if __name__ == '__main__':
    unittest.main()

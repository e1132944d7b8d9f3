import os
import unittest
from unittest.mock import patch

from config import load_config


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        patcher = patch('config.load_dotenv')
        patcher.start()
        self.addCleanup(patcher.stop)

    def load(self, **env):
        with patch.dict(os.environ, env, clear=True):
            return load_config()

    def test_minimal_development_config(self):
        config = self.load(BOT_TOKEN="token", CHANNEL_ID="-100123")
        self.assertEqual(config.bot_token, "token")
        self.assertEqual(config.channel_id, "-100123")
        self.assertFalse(config.is_production)
        self.assertIsNone(config.webhook_url)
        self.assertEqual(config.db_path, "bot_data.db")
        self.assertEqual(config.port, 8080)
        self.assertEqual(config.session_idle_minutes, 120)

    def test_missing_token(self):
        with self.assertRaises(ValueError) as cm:
            self.load(CHANNEL_ID="-100123")
        self.assertIn("BOT_TOKEN", str(cm.exception))

    def test_missing_channel(self):
        with self.assertRaises(ValueError) as cm:
            self.load(BOT_TOKEN="token")
        self.assertIn("CHANNEL_ID", str(cm.exception))

    def test_production_requires_public_url_and_db(self):
        with self.assertRaises(ValueError) as cm:
            self.load(BOT_TOKEN="token", CHANNEL_ID="-1", ENVIRONMENT="production", DB_PATH="/data/bot.db")
        self.assertIn("PUBLIC_BASE_URL", str(cm.exception))

        with self.assertRaises(ValueError) as cm:
            self.load(BOT_TOKEN="token", CHANNEL_ID="-1", ENVIRONMENT="production", PUBLIC_BASE_URL="https://x.example")
        self.assertIn("DB_PATH", str(cm.exception))

    def test_webhook_url_strips_trailing_slashes(self):
        config = self.load(
            BOT_TOKEN="token",
            CHANNEL_ID="-1",
            ENVIRONMENT="Production",
            PUBLIC_BASE_URL="https://bot.example.com//",
            DB_PATH="/data/bot.db",
            PORT="9000",
            SESSION_IDLE_MINUTES="0",
        )
        self.assertTrue(config.is_production)
        self.assertEqual(config.webhook_url, "https://bot.example.com/telegram")
        self.assertEqual(config.port, 9000)
        self.assertEqual(config.session_idle_minutes, 0)

    def test_bad_integer(self):
        with self.assertRaises(ValueError) as cm:
            self.load(BOT_TOKEN="token", CHANNEL_ID="-1", PORT="eighty")
        self.assertIn("PORT", str(cm.exception))

if __name__ == '__main__':
    unittest.main()

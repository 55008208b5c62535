import os
import unittest
from unittest import mock

from chaos_sync.config import Settings
from chaos_sync.sync.channel import ReconnectPolicy


class SettingsTests(unittest.TestCase):
    def test_ws_url_is_derived_from_api_url(self) -> None:
        self.assertEqual(Settings(api_url="http://localhost:3000/").ws_url, "ws://localhost:3000/ws")
        self.assertEqual(Settings(api_url="https://chaos.example.com").ws_url, "wss://chaos.example.com/ws")
        self.assertEqual(Settings(api_url="http://h", ws_path="/live").ws_url, "ws://h/live")

    def test_environment_overrides(self) -> None:
        env = {
            "CHAOS_SYNC_API_URL": "http://backend:8080",
            "CHAOS_SYNC_PAGE_SIZE": "50",
            "CHAOS_SYNC_RECONNECT_MAX_ATTEMPTS": "3",
        }
        with mock.patch.dict(os.environ, env):
            loaded = Settings(_env_file=None)
        self.assertEqual(loaded.api_url, "http://backend:8080")
        self.assertEqual(loaded.page_size, 50)
        self.assertEqual(ReconnectPolicy.from_settings(loaded).max_attempts, 3)

    def test_default_reconnect_policy(self) -> None:
        policy = ReconnectPolicy.from_settings(Settings(_env_file=None))
        self.assertEqual(policy, ReconnectPolicy(base_delay=1.0, multiplier=2.0, max_delay=30.0, max_attempts=10))


if __name__ == "__main__":
    unittest.main()

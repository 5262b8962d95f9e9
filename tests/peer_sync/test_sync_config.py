import unittest

from app_config_schema import SyncSettings
from peer_sync.config import SyncClientConfig, SyncConfigurationError, SyncServerConfig


class SyncServerConfigTests(unittest.TestCase):
    def test_from_settings_copies_endpoint(self) -> None:
        config = SyncServerConfig.from_settings(
            SyncSettings(host="0.0.0.0", port=9000, path="/peer")
        )

        self.assertEqual("0.0.0.0", config.host)
        self.assertEqual(9000, config.port)
        self.assertEqual("/peer", config.websocket_path)

    def test_empty_path_falls_back_to_default(self) -> None:
        config = SyncServerConfig.from_settings(SyncSettings(path=""))
        self.assertEqual("/sync", config.websocket_path)

    def test_rejects_out_of_range_port(self) -> None:
        with self.assertRaises(SyncConfigurationError):
            SyncServerConfig(port=70000)

    def test_rejects_relative_path(self) -> None:
        with self.assertRaises(SyncConfigurationError):
            SyncServerConfig(path="sync")

    def test_rejects_blank_host(self) -> None:
        with self.assertRaises(SyncConfigurationError):
            SyncServerConfig(host="  ")


class SyncClientConfigTests(unittest.TestCase):
    def test_peer_url_is_built_from_endpoint_when_empty(self) -> None:
        config = SyncClientConfig.from_settings(
            SyncSettings(role="mirror", host="10.0.0.5", port=8766, path="/sync")
        )
        self.assertEqual("ws://10.0.0.5:8766/sync", config.peer_url)

    def test_explicit_peer_url_wins(self) -> None:
        config = SyncClientConfig.from_settings(
            SyncSettings(role="mirror", peer_url="wss://timer.example.org/sync")
        )
        self.assertEqual("wss://timer.example.org/sync", config.peer_url)

    def test_rejects_non_websocket_scheme(self) -> None:
        with self.assertRaises(SyncConfigurationError):
            SyncClientConfig(peer_url="http://127.0.0.1:8766/sync")

    def test_rejects_non_positive_reconnect_delay(self) -> None:
        with self.assertRaises(SyncConfigurationError):
            SyncClientConfig(peer_url="ws://127.0.0.1:8766/sync", reconnect_delay_seconds=0)


if __name__ == "__main__":
    unittest.main()

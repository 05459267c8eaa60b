import tempfile
import unittest
from pathlib import Path

from s3_direct.controller import ObjectStoreClient, compose_key, parent_path
from s3_direct.errors import AuthError, ConfigError, NetworkError, UploadError, ValidationError
from s3_direct.models import ClientStatus
from s3_direct.profiles import ConfigStorage, EnvironmentCredentialProvider
from s3_direct.services import ObjectStoreService
from s3_direct.settings import AppSettings
from s3_direct.signing import EMPTY_PAYLOAD_HASH
from tests.fakes import FIXED_NOW, LIST_BODY, FakeConfigStorage, FakeKeychain, FakeTransport, make_credentials


class ObjectStoreClientTests(unittest.TestCase):
    def setUp(self):
        self.transport = FakeTransport()
        self.storage = FakeConfigStorage()
        self.settings = AppSettings(endpoint="s3.example.com", region="eu-west-1")
        self.client = ObjectStoreClient(
            service=ObjectStoreService(transport=self.transport, clock=lambda: FIXED_NOW),
            storage=self.storage,
            settings=self.settings,
        )

    def _connect(self):
        self.transport.queue(200, LIST_BODY)
        return self.client.connect("AKIDEXAMPLE", "secret-key", "my-bucket")

    def test_connect_lists_root_and_persists(self):
        result = self._connect()

        self.assertTrue(self.client.is_connected)
        self.assertEqual(ClientStatus.CONNECTED, self.client.status)
        self.assertEqual(2, len(result.files))
        self.assertEqual(1, len(self.transport.calls))
        self.assertEqual("https://my-bucket.s3.example.com/?delimiter=%2F", self.transport.calls[0]["url"])
        self.assertEqual([make_credentials()], self.storage.saved)

    def test_connect_failure_leaves_client_disconnected(self):
        self.transport.queue(403, b"<Error><Code>InvalidAccessKeyId</Code></Error>")

        with self.assertRaises(AuthError):
            self.client.connect("AKIDEXAMPLE", "wrong", "my-bucket")

        self.assertFalse(self.client.is_connected)
        self.assertEqual(ClientStatus.DISCONNECTED, self.client.status)
        self.assertIsNone(self.client.credentials)
        self.assertEqual([], self.storage.saved)

    def test_connect_network_failure_is_surfaced(self):
        self.transport.fail("timed out")

        with self.assertRaises(NetworkError):
            self.client.connect("AKIDEXAMPLE", "secret-key", "my-bucket")

        self.assertFalse(self.client.is_connected)

    def test_connect_requires_all_fields(self):
        with self.assertRaises(ValidationError):
            self.client.connect("", "secret", "bucket")

    def test_operations_before_connect_raise_config_error_without_network(self):
        with self.assertRaises(ConfigError):
            self.client.upload_file(b"data", "a.txt")
        with self.assertRaises(ConfigError):
            self.client.list_files("")
        with self.assertRaises(ConfigError):
            self.client.download_file("a.txt")
        with self.assertRaises(ConfigError):
            self.client.delete_file("a.txt")
        with self.assertRaises(ConfigError):
            self.client.upload_files([("a.txt", b"x")])

        self.assertEqual([], self.transport.calls)

    def test_list_files_replaces_cache_and_current_path(self):
        self._connect()
        self.transport.queue(200, b"<ListBucketResult><CommonPrefixes><Prefix>a/x/</Prefix></CommonPrefixes></ListBucketResult>")

        self.client.list_files("a/")

        state = self.client.state
        self.assertEqual("a/", state.current_path)
        self.assertEqual([], state.cached_files)
        self.assertEqual(["a/x/"], [folder.prefix for folder in state.cached_folders])
        self.assertTrue(self.transport.calls[-1]["url"].endswith("?delimiter=%2F&prefix=a%2F"))

    def test_stats_follow_listing_and_transfers(self):
        self._connect()
        stats = self.client.stats
        self.assertEqual(2, stats.total_files)
        self.assertEqual(30, stats.total_size)

        self.client.upload_file(b"abc", "x.txt")
        self.transport.queue(500, b"boom")
        with self.assertRaises(UploadError):
            self.client.upload_file(b"abc", "y.txt")

        stats = self.client.stats
        self.assertEqual(1, stats.uploaded_files)
        self.assertEqual(3, stats.uploaded_bytes)
        self.assertEqual(1, stats.failed_uploads)

    def test_upload_file_composes_key_from_path(self):
        self._connect()

        result = self.client.upload_file(b"payload", "report.pdf", "reports/2024", {"source": "scheduler"})

        call = self.transport.calls[-1]
        self.assertEqual("reports/2024/report.pdf", result.key)
        self.assertEqual("https://my-bucket.s3.example.com/reports/2024/report.pdf", call["url"])
        self.assertEqual("scheduler", call["headers"]["x-amz-meta-source"])

    def test_upload_zero_byte_file(self):
        self._connect()

        self.client.upload_file(b"", "empty.txt")

        self.assertEqual(EMPTY_PAYLOAD_HASH, self.transport.calls[-1]["headers"]["x-amz-content-sha256"])

    def test_upload_path_reads_local_file(self):
        self._connect()
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "notes.txt"
            source.write_bytes(b"local notes")

            result = self.client.upload_path(source, "docs")

        self.assertEqual("docs/notes.txt", result.key)
        self.assertEqual(b"local notes", self.transport.calls[-1]["body"])

    def test_upload_files_reports_progress_and_individual_failures(self):
        self._connect()
        self.transport.queue(200)
        self.transport.queue(403, b"<Error><Code>AccessDenied</Code></Error>")
        progress = []

        results = self.client.upload_files(
            [("one.txt", b"1"), ("two.txt", b"22")],
            "batch/",
            progress_callback=progress.append,
        )

        self.assertEqual([True, False], [result.success for result in results])
        self.assertEqual("batch/one.txt", results[0].key)
        self.assertIn("AccessDenied", results[1].error)
        self.assertEqual([0, 1, 2], [item.completed for item in progress])
        self.assertEqual(100, progress[-1].percentage)
        self.assertEqual("one.txt", progress[0].current)

    def test_download_file_returns_bytes(self):
        self._connect()
        self.transport.queue(200, b"content")

        data = self.client.download_file("a/b.txt")

        self.assertEqual(b"content", data)
        self.assertEqual("GET", self.transport.calls[-1]["method"])
        self.assertEqual(1, self.client.stats.downloaded_files)

    def test_download_to_directory(self):
        self._connect()
        self.transport.queue(200, b"content")
        with tempfile.TemporaryDirectory() as tmp:
            target = self.client.download_to("a/b.txt", tmp)

            self.assertEqual(Path(tmp) / "b.txt", target)
            self.assertEqual(b"content", target.read_bytes())

    def test_delete_file_updates_cache(self):
        self._connect()
        self.transport.queue(204)

        self.client.delete_file("c.txt")

        self.assertEqual(["a/b.txt"], [entry.key for entry in self.client.state.cached_files])
        self.assertEqual("DELETE", self.transport.calls[-1]["method"])

    def test_delete_files_collects_results(self):
        self._connect()
        self.transport.queue(204)
        self.transport.queue(500, b"oops")

        results = self.client.delete_files(["a/b.txt", "c.txt"])

        self.assertEqual([True, False], [result.success for result in results])
        self.assertEqual(1, self.client.stats.deleted_files)

    def test_disconnect_drops_credentials_and_cache(self):
        self._connect()

        self.client.disconnect()

        self.assertFalse(self.client.is_connected)
        self.assertIsNone(self.client.credentials)
        self.assertEqual([], self.client.state.cached_files)
        with self.assertRaises(ConfigError):
            self.client.download_file("a/b.txt")

    def test_go_up_lists_parent(self):
        self._connect()
        self.transport.queue(200, b"<ListBucketResult/>")
        self.client.list_files("a/b/")
        self.transport.queue(200, b"<ListBucketResult/>")

        self.client.go_up()

        self.assertEqual("a/", self.client.state.current_path)
        self.assertTrue(self.transport.calls[-1]["url"].endswith("?delimiter=%2F&prefix=a%2F"))

    def test_connect_saved_uses_stored_credentials(self):
        self.storage.credentials = make_credentials(endpoint="other.example.com")
        self.transport.queue(200, LIST_BODY)

        self.client.connect_saved()

        self.assertTrue(self.client.is_connected)
        self.assertTrue(self.transport.calls[0]["url"].startswith("https://my-bucket.other.example.com/"))

    def test_connect_saved_without_config(self):
        with self.assertRaises(ConfigError):
            self.client.connect_saved()

    def test_connect_from_environment_provider(self):
        provider = EnvironmentCredentialProvider(
            {"S3_ACCESS_KEY_ID": "AKIDENV", "S3_SECRET_ACCESS_KEY": "env-secret", "S3_BUCKET": "env-bucket"}
        )
        self.transport.queue(200, LIST_BODY)

        self.client.connect_from(provider)

        self.assertEqual("env-bucket", self.client.credentials.bucket)
        self.assertIn("Credential=AKIDENV/", self.transport.calls[0]["headers"]["Authorization"])

    def test_failed_reconnect_clears_previous_listing(self):
        self._connect()
        self.transport.queue(403, b"<Error><Code>AccessDenied</Code></Error>")

        with self.assertRaises(AuthError):
            self.client.connect("AKIDEXAMPLE", "secret-key", "other-bucket")

        state = self.client.state
        self.assertEqual(ClientStatus.DISCONNECTED, state.status)
        self.assertEqual([], state.cached_files)
        self.assertEqual([], state.cached_folders)
        self.assertEqual("", state.current_path)

    def test_connect_survives_config_write_failure(self):
        class FailingStorage(FakeConfigStorage):
            def save(self, credentials):
                raise OSError("read-only home")

        client = ObjectStoreClient(
            service=ObjectStoreService(transport=self.transport, clock=lambda: FIXED_NOW),
            storage=FailingStorage(),
            settings=self.settings,
        )
        self.transport.queue(200, LIST_BODY)

        result = client.connect("AKIDEXAMPLE", "secret-key", "my-bucket")

        self.assertTrue(client.is_connected)
        self.assertEqual(2, len(result.files))

    def test_upload_finished_by_server_counts_as_uploaded(self):
        self._connect()
        checks = iter([False, True])

        result = self.client.upload_file(b"abc", "x.txt", cancel_requested=lambda: next(checks))

        self.assertEqual("x.txt", result.key)
        self.assertEqual(1, self.client.stats.uploaded_files)
        self.assertEqual(0, self.client.stats.failed_uploads)

    def test_environment_connect_leaves_saved_connection_alone(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            keychain = FakeKeychain()
            storage = ConfigStorage(path, keychain=keychain)
            storage.save(make_credentials(access_key_id="SAVED", secret_access_key="saved-secret"))
            saved_file = path.read_text(encoding="utf-8")
            client = ObjectStoreClient(
                service=ObjectStoreService(transport=self.transport, clock=lambda: FIXED_NOW),
                storage=storage,
                settings=self.settings,
            )
            provider = EnvironmentCredentialProvider(
                {"S3_ACCESS_KEY_ID": "ENV", "S3_SECRET_ACCESS_KEY": "env-secret", "S3_BUCKET": "other"}
            )
            self.transport.queue(200, LIST_BODY)

            client.connect_from(provider)

            self.assertTrue(client.is_connected)
            self.assertEqual({"SAVED": "saved-secret"}, keychain.secrets)
            self.assertEqual(saved_file, path.read_text(encoding="utf-8"))

    def test_connect_saved_does_not_rewrite_config(self):
        self.storage.credentials = make_credentials()
        self.transport.queue(200, LIST_BODY)

        self.client.connect_saved()

        self.assertEqual([], self.storage.saved)

    def test_clear_config(self):
        self.client.clear_config()

        self.assertEqual(1, self.storage.cleared)


class KeyHelperTests(unittest.TestCase):
    def test_compose_key(self):
        self.assertEqual("a.txt", compose_key("", "a.txt"))
        self.assertEqual("dir/a.txt", compose_key("dir", "a.txt"))
        self.assertEqual("dir/sub/a.txt", compose_key("/dir/sub/", "a.txt"))

    def test_compose_key_rejects_bad_names(self):
        with self.assertRaises(ValidationError):
            compose_key("dir", "  ")
        with self.assertRaises(ValidationError):
            compose_key("dir", "x/y.txt")

    def test_parent_path(self):
        self.assertEqual("", parent_path(""))
        self.assertEqual("", parent_path("a/"))
        self.assertEqual("a/", parent_path("a/b/"))
        self.assertEqual("a/b/", parent_path("a/b/c"))


if __name__ == "__main__":
    unittest.main()

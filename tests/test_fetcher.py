import json
import random
import socket
import threading
import time
import unittest
from unittest.mock import MagicMock, patch

import requests

from active_streams.adapters import PlexAdapter
from active_streams.fetcher import StreamFetcher
from active_streams.models import DisplayOptions, FetchError, ServerDescriptor


def make_server(name, server_type='jellyfin', host=None, token='secret-token', **overrides):
    return ServerDescriptor(
        type=server_type,
        name=name,
        host=host or f'{name.lower()}.local',
        port=8096,
        token=token,
        **overrides,
    )


def make_response(status_code=200, payload=None, invalid_json=False):
    response = MagicMock()
    response.status_code = status_code
    body = b'<html>not json</html>' if invalid_json else json.dumps(payload).encode()
    # Deliver the body in two chunks like a streamed read
    response.iter_content.return_value = [body[:5], body[5:]]
    return response


def jellyfin_payload(*titles):
    return [{'UserName': 'jesse', 'NowPlayingItem': {'Name': title}} for title in titles]


class FetchServerTests(unittest.TestCase):
    def setUp(self):
        self.fetcher = StreamFetcher()

    def test_unknown_server_type_is_reported_without_a_request(self):
        with patch('active_streams.fetcher.requests.get') as mock_get:
            result = self.fetcher.fetch_server(make_server('Den', server_type='kodi'))

        mock_get.assert_not_called()
        self.assertEqual(result.error, FetchError('Den', 'Unknown server type'))
        self.assertEqual(result.streams, [])

    def test_request_uses_timeouts_and_verification(self):
        with patch('active_streams.fetcher.requests.get') as mock_get:
            mock_get.return_value = make_response(payload=jellyfin_payload('Heat'))
            self.fetcher.fetch_server(make_server('Den', use_ssl=True))

        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], 'https://den.local:8096/Sessions')
        self.assertEqual(kwargs['timeout'], (5, 10))
        self.assertTrue(kwargs['verify'])
        self.assertTrue(kwargs['stream'])
        self.assertEqual(kwargs['headers'], {'X-Emby-Token': 'secret-token'})

    def test_certificate_checks_can_be_turned_off(self):
        with patch('active_streams.fetcher.requests.get') as mock_get:
            mock_get.return_value = make_response(payload=[])
            self.fetcher.fetch_server(make_server('Den', use_ssl=True, verify_ssl=False))

        self.assertFalse(mock_get.call_args[1]['verify'])

    def test_streamed_body_is_read_and_response_closed(self):
        response = make_response(payload=jellyfin_payload('Heat', 'Ronin'))
        with patch('active_streams.fetcher.requests.get', return_value=response):
            result = self.fetcher.fetch_server(make_server('Den'))

        self.assertEqual([s.title for s in result.streams], ['Heat', 'Ronin'])
        response.close.assert_called_once_with()

    def test_connection_error_is_redacted(self):
        error = requests.ConnectionError(
            "HTTPConnectionPool(host='den.local', port=8096): Max retries exceeded "
            "with url: /emby/Sessions?api_key=secret-token"
        )
        with patch('active_streams.fetcher.requests.get', side_effect=error):
            with self.assertLogs('active_streams', level='WARNING') as logs:
                result = self.fetcher.fetch_server(make_server('Den', server_type='emby'))

        self.assertTrue(result.error.message.startswith('Connection error: '))
        self.assertIn('api_key=***', result.error.message)
        self.assertNotIn('secret-token', result.error.message)
        self.assertNotIn('secret-token', '\n'.join(logs.output))

    def test_non_200_status_is_reported(self):
        with patch('active_streams.fetcher.requests.get', return_value=make_response(401)):
            result = self.fetcher.fetch_server(make_server('Den'))

        self.assertEqual(result.error, FetchError('Den', 'HTTP 401'))

    def test_invalid_json_is_reported(self):
        with patch('active_streams.fetcher.requests.get', return_value=make_response(invalid_json=True)):
            result = self.fetcher.fetch_server(make_server('Den'))

        self.assertEqual(result.error, FetchError('Den', 'Invalid response from server'))

    def test_normalizer_failure_is_reported(self):
        with patch('active_streams.fetcher.requests.get', return_value=make_response(payload={})):
            with patch.object(PlexAdapter, 'normalize', side_effect=RuntimeError('boom')):
                with self.assertLogs('active_streams', level='ERROR'):
                    result = self.fetcher.fetch_server(make_server('Den', server_type='plex'))

        self.assertEqual(result.error, FetchError('Den', 'Failed to parse response'))

    def test_episode_numbering_reaches_the_normalizer(self):
        payload = [{
            'NowPlayingItem': {
                'Name': 'Pilot', 'SeriesName': 'Breaking Bad', 'ParentIndexNumber': 1, 'IndexNumber': 1,
            },
        }]
        with patch('active_streams.fetcher.requests.get', return_value=make_response(payload=payload)):
            result = self.fetcher.fetch_server(make_server('Den'), DisplayOptions(show_episode_numbers=True))

        self.assertEqual(result.streams[0].title, 'Breaking Bad - S01E01 - Pilot')


class FetchAllTests(unittest.TestCase):
    def test_empty_registry_makes_no_requests(self):
        with patch('active_streams.fetcher.requests.get') as mock_get:
            result = StreamFetcher().fetch_all([])

        mock_get.assert_not_called()
        self.assertEqual(result.streams, [])
        self.assertEqual(result.errors, [])

    def test_results_follow_registry_order_not_completion_order(self):
        latencies = {'alpha.local': 0.3, 'bravo.local': 0.0, 'charlie.local': 0.1}

        def fake_get(url, **kwargs):
            host = url.split('//')[1].split(':')[0]
            time.sleep(latencies[host])
            return make_response(payload=jellyfin_payload(f'{host} one', f'{host} two'))

        servers = [make_server('Alpha'), make_server('Bravo'), make_server('Charlie')]
        with patch('active_streams.fetcher.requests.get', side_effect=fake_get):
            result = StreamFetcher().fetch_all(servers)

        self.assertEqual([s.title for s in result.streams], [
            'alpha.local one', 'alpha.local two',
            'bravo.local one', 'bravo.local two',
            'charlie.local one', 'charlie.local two',
        ])
        self.assertEqual(result.errors, [])

    def test_one_unreachable_server_does_not_hide_the_others(self):
        servers = [make_server('Alpha'), make_server('Bravo'), make_server('Charlie')]

        for failing in range(len(servers)):
            failing_host = servers[failing].host

            def fake_get(url, **kwargs):
                if failing_host in url:
                    raise requests.ConnectionError('Connection refused')
                return make_response(payload=jellyfin_payload('Heat'))

            with self.subTest(failing=servers[failing].name):
                with patch('active_streams.fetcher.requests.get', side_effect=fake_get):
                    result = StreamFetcher().fetch_all(servers)

                self.assertEqual(len(result.streams), 2)
                self.assertNotIn(servers[failing].name, [s.server_name for s in result.streams])
                self.assertEqual(len(result.errors), 1)
                self.assertEqual(result.errors[0].server_name, servers[failing].name)
                self.assertEqual(result.errors[0].message, 'Connection error: Connection refused')

    def test_servers_are_fetched_in_parallel(self):
        rng = random.Random(42)
        servers = [make_server(f'Server{i}') for i in range(10)]
        latencies = {server.host: rng.uniform(0.1, 0.3) for server in servers}

        def fake_get(url, **kwargs):
            host = url.split('//')[1].split(':')[0]
            time.sleep(latencies[host])
            return make_response(payload=jellyfin_payload(host))

        with patch('active_streams.fetcher.requests.get', side_effect=fake_get):
            start = time.monotonic()
            result = StreamFetcher().fetch_all(servers)
            elapsed = time.monotonic() - start

        self.assertEqual([s.title for s in result.streams], [server.host for server in servers])
        self.assertLess(elapsed, sum(latencies.values()) / 2)

    def test_server_past_the_deadline_is_reported_as_timed_out(self):
        def fake_get(url, **kwargs):
            if 'slow.local' in url:
                time.sleep(1.0)
            return make_response(payload=jellyfin_payload('Heat'))

        servers = [make_server('Slow'), make_server('Fast')]
        fetcher = StreamFetcher(total_timeout=0.2, deadline_grace=0.05)
        with patch('active_streams.fetcher.requests.get', side_effect=fake_get):
            start = time.monotonic()
            result = fetcher.fetch_all(servers)
            elapsed = time.monotonic() - start

        self.assertLess(elapsed, 0.9)
        self.assertEqual([s.server_name for s in result.streams], ['Fast'])
        self.assertEqual(result.errors, [FetchError('Slow', 'Timed out after 0.2s')])

    def test_unexpected_worker_failure_becomes_an_error(self):
        servers = [make_server('Den')]
        with patch.object(StreamFetcher, 'fetch_server', side_effect=RuntimeError('boom')):
            with self.assertLogs('active_streams', level='ERROR'):
                result = StreamFetcher().fetch_all(servers)

        self.assertEqual(result.errors, [FetchError('Den', 'Unexpected error')])


class TrickleServer(threading.Thread):
    """Local HTTP server that sends headers, then one body byte every 0.1s."""

    def __init__(self):
        super().__init__(daemon=True)
        self.listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.listener.bind(('127.0.0.1', 0))
        self.listener.listen(1)
        self.port = self.listener.getsockname()[1]
        self.stopped = threading.Event()

    def run(self):
        try:
            conn, _ = self.listener.accept()
        except OSError:
            return
        with conn:
            conn.recv(65536)
            conn.sendall(
                b'HTTP/1.1 200 OK\r\n'
                b'Content-Type: application/json\r\n'
                b'Content-Length: 1000\r\n'
                b'\r\n'
                b'['
            )
            while not self.stopped.wait(0.1):
                try:
                    conn.sendall(b' ')
                except OSError:
                    break

    def stop(self):
        self.stopped.set()
        self.listener.close()


class TotalTimeoutTests(unittest.TestCase):
    def test_trickling_server_is_cut_off_at_total_timeout(self):
        server = TrickleServer()
        server.start()
        self.addCleanup(server.stop)

        descriptor = ServerDescriptor(
            type='jellyfin', name='Trickle', host='127.0.0.1', port=server.port, token='secret-token'
        )
        fetcher = StreamFetcher(connect_timeout=1, total_timeout=0.5, deadline_grace=1.0)

        before = set(threading.enumerate())
        start = time.monotonic()
        with patch.dict('os.environ', {'NO_PROXY': '127.0.0.1', 'no_proxy': '127.0.0.1'}):
            with self.assertLogs('active_streams', level='WARNING'):
                result = fetcher.fetch_all([descriptor])
        elapsed = time.monotonic() - start

        self.assertLess(elapsed, 1.4)
        self.assertEqual(result.errors, [FetchError('Trickle', 'Timed out after 0.5s')])

        workers = [
            thread for thread in threading.enumerate()
            if thread not in before and thread.name.startswith('stream-fetch')
        ]
        for worker in workers:
            worker.join(timeout=1.0)
        self.assertEqual([w.name for w in workers if w.is_alive()], [])


class CheckConnectionTests(unittest.TestCase):
    def setUp(self):
        self.fetcher = StreamFetcher()

    def test_invalid_type(self):
        check = self.fetcher.check_connection(make_server('Den', server_type='kodi'))

        self.assertEqual(check.to_dict(), {'success': False, 'error': 'Invalid server type'})

    def test_emby_reports_server_name(self):
        response = make_response(payload={'ServerName': 'Basement', 'Version': '4.8'})
        with patch('active_streams.fetcher.requests.get', return_value=response) as mock_get:
            check = self.fetcher.check_connection(make_server('Den', server_type='emby'))

        self.assertEqual(mock_get.call_args[0][0], 'http://den.local:8096/emby/System/Info?api_key=secret-token')
        self.assertEqual(check.to_dict(), {'success': True, 'message': 'Connected to: Basement'})

    def test_plex_success(self):
        response = make_response(payload={'MediaContainer': {'size': 0}})
        with patch('active_streams.fetcher.requests.get', return_value=response):
            check = self.fetcher.check_connection(make_server('Den', server_type='plex'))

        self.assertTrue(check.success)
        self.assertEqual(check.message, 'Connected to: Plex Server')

    def test_success_without_body(self):
        with patch('active_streams.fetcher.requests.get', return_value=make_response(204, invalid_json=True)):
            check = self.fetcher.check_connection(make_server('Den'))

        self.assertEqual(check.to_dict(), {'success': True, 'message': 'Connection successful'})

    def test_http_failures(self):
        cases = {
            401: 'Authentication failed (HTTP 401) - Please verify your token/API key',
            404: 'Server endpoint not found (HTTP 404) - Check host and port',
            500: 'HTTP 500',
        }
        for status, message in cases.items():
            with self.subTest(status=status):
                with patch('active_streams.fetcher.requests.get', return_value=make_response(status)):
                    check = self.fetcher.check_connection(make_server('Den'))

                self.assertFalse(check.success)
                self.assertEqual(check.message, message)

    def test_transport_failure_names_address_and_hides_token(self):
        error = requests.ConnectionError('Failed for /emby/System/Info?api_key=secret-token')
        with patch('active_streams.fetcher.requests.get', side_effect=error):
            check = self.fetcher.check_connection(make_server('Den', server_type='emby'))

        self.assertFalse(check.success)
        self.assertTrue(check.message.startswith('Failed to connect to http://den.local:8096 - Error: '))
        self.assertNotIn('secret-token', check.message)


if __name__ == '__main__':
    unittest.main()

import unittest

from flask_app.utils.validators import is_valid_host, is_valid_port, validate_server_config


def valid_data(**overrides):
    data = {
        'server_type': 'jellyfin',
        'name': 'Den',
        'host': '192.168.1.10',
        'port': '8096',
        'token': 'abc123',
    }
    data.update(overrides)
    return data


class HostValidationTests(unittest.TestCase):
    def test_accepted_hosts(self):
        for host in ('192.168.1.10', 'fd00::10', '[fd00::10]', 'localhost', 'media-server.lan', 'plex.example.com.'):
            with self.subTest(host=host):
                self.assertTrue(is_valid_host(host))

    def test_rejected_hosts(self):
        for host in ('', '   ', '999.1.1.1', '192.168.1', '-bad.local', 'bad_host', 'a..b', 'x' * 254):
            with self.subTest(host=host):
                self.assertFalse(is_valid_host(host))

    def test_port_bounds(self):
        self.assertTrue(is_valid_port('1'))
        self.assertTrue(is_valid_port(65535))
        for port in ('0', '65536', 'abc', '', None):
            with self.subTest(port=port):
                self.assertFalse(is_valid_port(port))


class ServerConfigValidationTests(unittest.TestCase):
    def test_valid_config_has_no_errors(self):
        self.assertEqual(validate_server_config(valid_data()), [])

    def test_every_field_is_checked(self):
        errors = validate_server_config({
            'server_type': 'kodi',
            'name': '',
            'host': 'bad_host',
            'port': '70000',
            'token': ' ',
        })

        self.assertEqual(errors, [
            'Invalid server type.',
            'Server name is required.',
            'Invalid host IP/hostname.',
            'Invalid port number (must be 1-65535).',
            'API token/key is required.',
        ])

    def test_missing_host_and_long_name(self):
        errors = validate_server_config(valid_data(name='n' * 101, host=''))

        self.assertEqual(errors, [
            'Server name too long (max 100 characters).',
            'Host is required.',
        ])

    def test_server_type_is_case_insensitive(self):
        self.assertEqual(validate_server_config(valid_data(server_type='Plex')), [])


if __name__ == '__main__':
    unittest.main()

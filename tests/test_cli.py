"""
Test command line parsing.

Run with: python3 -m unittest tests.test_cli
"""

import unittest

from mssqladmin_ng import cli


class TestParseTarget(unittest.TestCase):
    def test_host_only(self):
        self.assertEqual(cli.parse_target("SQL01"), ("", "", "", "SQL01"))

    def test_full_target(self):
        self.assertEqual(
            cli.parse_target("CORP/admin:secret@SQL01\\PROD"),
            ("CORP", "admin", "secret", "SQL01\\PROD"),
        )

    def test_password_with_at_sign(self):
        self.assertEqual(
            cli.parse_target("admin:P@ss@SQL01:1434"),
            ("", "admin", "P@ss", "SQL01:1434"),
        )


class TestBuildServers(unittest.TestCase):
    def parse(self, argv):
        args = cli.build_parser().parse_args(argv)
        targets = [cli.parse_target(target) for target in args.targets]
        return args, cli.build_servers(args, targets)

    def test_port_option_applies_without_explicit_port(self):
        _, servers = self.parse(["SQL01", "SQL02:1500", "-port", "2433"])
        self.assertEqual([s.port for s in servers], [2433, 1500])

    def test_database_option(self):
        _, servers = self.parse(["sa:pw@SQL01", "-db", "AppDb"])
        self.assertEqual(servers[0].database, "AppDb")

    def test_credentials_from_first_target(self):
        args, _ = self.parse(["CORP/admin:secret@SQL01", "SQL02"])
        targets = [cli.parse_target(target) for target in args.targets]
        credentials = cli.build_credentials(args, targets)
        self.assertEqual(credentials.username, "admin")
        self.assertEqual(credentials.password, "secret")
        self.assertEqual(credentials.domain, "CORP")

    def test_explicit_options_override_target(self):
        args, _ = self.parse(["admin:secret@SQL01", "-u", "other", "-p", "pw2"])
        targets = [cli.parse_target(target) for target in args.targets]
        credentials = cli.build_credentials(args, targets)
        self.assertEqual(credentials.username, "other")
        self.assertEqual(credentials.password, "pw2")

    def test_action_remainder(self):
        args, _ = self.parse(["SQL01", "-a", "backup-history", "-d", "AppDb", "--last"])
        self.assertEqual(args.action, ["backup-history", "-d", "AppDb", "--last"])


class TestMain(unittest.TestCase):
    def test_list_actions(self):
        self.assertEqual(cli.main(["--list-actions"]), 0)

    def test_no_target(self):
        self.assertEqual(cli.main([]), 1)

    def test_invalid_target(self):
        self.assertEqual(cli.main(["[SQL01", "-no-pass", "-q", "SELECT 1"]), 1)


if __name__ == "__main__":
    unittest.main()

"""
Test server parsing.

Syntax: host[\\instance][:port][@database]
- \\ = named instance separator
- : = port separator (standard host:port)
- @ = database context

Run with: python3 -m unittest tests.test_server_parsing
"""

import unittest
from mssqladmin_ng.core.models.server import Server


class TestServerParsing(unittest.TestCase):
    """Test Server.parse_server() with various input formats."""

    def test_simple_hostname(self):
        """Test parsing a simple hostname without any delimiters."""
        server = Server.parse_server("SQL01")
        self.assertEqual(server.hostname, "SQL01")
        self.assertEqual(server.port, 1433)
        self.assertIsNone(server.instance)
        self.assertIsNone(server.database)
        self.assertFalse(server.port_explicit)

    def test_hostname_with_port(self):
        """Test parsing hostname with port specification."""
        server = Server.parse_server("SQL01:1434")
        self.assertEqual(server.hostname, "SQL01")
        self.assertEqual(server.port, 1434)
        self.assertTrue(server.port_explicit)

    def test_named_instance(self):
        """Test parsing HOST\\INSTANCE."""
        server = Server.parse_server("SQL01\\PROD")
        self.assertEqual(server.hostname, "SQL01")
        self.assertEqual(server.instance, "PROD")
        self.assertEqual(server.instance_name, "PROD")
        self.assertEqual(server.display_name, "SQL01\\PROD")

    def test_default_instance_name(self):
        """Test the default instance is reported as MSSQLSERVER."""
        server = Server.parse_server("SQL01")
        self.assertEqual(server.instance_name, "MSSQLSERVER")
        self.assertEqual(server.sql_instance, "SQL01")

    def test_hostname_with_database(self):
        """Test parsing hostname with database context."""
        server = Server.parse_server("SQL01@mydb")
        self.assertEqual(server.hostname, "SQL01")
        self.assertEqual(server.database, "mydb")

    def test_complete_syntax(self):
        """Test parsing with all components in order."""
        server = Server.parse_server("SQL01\\PROD:1434@mydb")
        self.assertEqual(server.hostname, "SQL01")
        self.assertEqual(server.instance, "PROD")
        self.assertEqual(server.port, 1434)
        self.assertEqual(server.database, "mydb")

    def test_flexible_order_db_port(self):
        """Test parsing with database before port."""
        server = Server.parse_server("SQL01@mydb:1434")
        self.assertEqual(server.port, 1434)
        self.assertEqual(server.database, "mydb")

    def test_database_argument_is_default(self):
        """Test the database argument applies when the input names none."""
        self.assertEqual(Server.parse_server("SQL01", database="appdb").database, "appdb")
        self.assertEqual(Server.parse_server("SQL01@other", database="appdb").database, "other")


class TestBracketedServerNames(unittest.TestCase):
    """Test bracketed SQL Server identifiers with special characters."""

    def test_bracketed_simple(self):
        server = Server.parse_server("[SQL-01]")
        self.assertEqual(server.hostname, "SQL-01")
        self.assertEqual(server.port, 1433)

    def test_bracketed_with_colon_and_port(self):
        """Test parsing bracketed server with colon in name AND explicit port."""
        server = Server.parse_server("[SERVER:001]:1434")
        self.assertEqual(server.hostname, "SERVER:001")
        self.assertEqual(server.port, 1434)

    def test_bracketed_with_at_sign(self):
        server = Server.parse_server("[SQL@PROD]@mydb")
        self.assertEqual(server.hostname, "SQL@PROD")
        self.assertEqual(server.database, "mydb")

    def test_bracketed_named_instance(self):
        server = Server.parse_server("[SQL.PROD.COM\\DWH]")
        self.assertEqual(server.hostname, "SQL.PROD.COM")
        self.assertEqual(server.instance, "DWH")


class TestIdentity(unittest.TestCase):
    """Names reported by the server once connected."""

    def test_set_identity(self):
        server = Server.parse_server("10.0.0.5")
        server.set_identity("SQL01", "PROD", "SQL01\\PROD")
        self.assertEqual(server.computer_name, "SQL01")
        self.assertEqual(server.instance_name, "PROD")
        self.assertEqual(server.sql_instance, "SQL01\\PROD")

    def test_same_instance_ignores_case(self):
        first = Server.parse_server("sql01\\prod")
        second = Server.parse_server("SQL01\\PROD:1500")
        third = Server.parse_server("SQL02\\PROD")
        self.assertTrue(first.same_instance(second))
        self.assertFalse(first.same_instance(third))

    def test_major_version(self):
        server = Server.parse_server("SQL01")
        self.assertEqual(server.major_version, 0)
        server.version = "15.0.2000.5"
        self.assertEqual(server.major_version, 15)


class TestEdgeCases(unittest.TestCase):
    """Test edge cases and error handling."""

    def test_empty_string(self):
        with self.assertRaises(ValueError) as ctx:
            Server.parse_server("")
        self.assertIn("cannot be null or empty", str(ctx.exception))

    def test_whitespace_only(self):
        with self.assertRaises(ValueError) as ctx:
            Server.parse_server("   ")
        self.assertIn("cannot be null or empty", str(ctx.exception))

    def test_unclosed_bracket(self):
        with self.assertRaises(ValueError) as ctx:
            Server.parse_server("[SERVER")
        self.assertIn("Unclosed bracket", str(ctx.exception))

    def test_text_after_bracket(self):
        with self.assertRaises(ValueError) as ctx:
            Server.parse_server("[SERVER]junk")
        self.assertIn("Invalid target format", str(ctx.exception))

    def test_empty_port(self):
        """Test parsing empty port uses default port."""
        result = Server.parse_server("SQL01:")
        self.assertEqual(result.hostname, "SQL01")
        self.assertEqual(result.port, 1433)

    def test_invalid_port_number(self):
        with self.assertRaises(ValueError) as ctx:
            Server.parse_server("SQL01:abc")
        self.assertIn("Invalid port number", str(ctx.exception))

    def test_port_out_of_range_high(self):
        with self.assertRaises(ValueError) as ctx:
            Server.parse_server("SQL01:99999")
        self.assertIn("Port must be between 1 and 65535", str(ctx.exception))

    def test_port_out_of_range_low(self):
        with self.assertRaises(ValueError) as ctx:
            Server.parse_server("SQL01:0")
        self.assertIn("Port must be between 1 and 65535", str(ctx.exception))

    def test_empty_database(self):
        """Test parsing empty database uses default (None)."""
        result = Server.parse_server("SQL01@")
        self.assertEqual(result.hostname, "SQL01")
        self.assertIsNone(result.database)


if __name__ == "__main__":
    unittest.main()

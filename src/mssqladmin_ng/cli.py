# mssqladmin_ng/cli.py

# Built-in imports
import argparse
import re
import sys
from getpass import getpass
from typing import List, Optional, Tuple

# Third party imports
from loguru import logger

# Local imports
from . import __version__
from .core.actions.factory import ActionFactory
from .core.exceptions import ActionError, MssqlAdminError
from .core.models.server import Server
from .core.runner import InstanceRunner
from .core.runspaces import Runspace
from .core.services.authentication import Credentials
from .core.services.connection import InstanceConnector
from .core.terminal import Terminal
from .core.utils import helper, logbook
from .core.utils.formatters import OutputFormatter

# Import actions to register them with the factory
from .core import actions  # noqa: F401

TARGET_REGEX = re.compile(r"(?:(?:([^/@:]*)/)?([^@:]*)(?::([^@]*))?@)?(.*)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mssqladmin-ng",
        add_help=True,
        description="Run SQL Server administration commands against one or more instances.",
    )

    parser.add_argument(
        "targets",
        nargs="*",
        metavar="target",
        help="[[domain/]username[:password]@]host[\\instance][:port]",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-db", action="store", help="Database to connect to (default: login default)")

    group_auth = parser.add_argument_group("Authentication")
    group_auth.add_argument("-u", "--username", default=None, help="Login name (overrides the target)")
    group_auth.add_argument("-p", "--password", default=None, help="Password (overrides the target)")
    group_auth.add_argument("-domain", default=None, help="Domain of a Windows login")
    group_auth.add_argument(
        "-windows-auth",
        action="store_true",
        default=False,
        help="whether or not to use Windows Authentication (default False)",
    )
    group_auth.add_argument(
        "-hashes", action="store", type=str, metavar="LMHASH:NTHASH",
        help="NTLM hashes, format is LMHASH:NTHASH",
    )
    group_auth.add_argument(
        "-no-pass", action="store_true", help="don't ask for password (useful for -k)"
    )
    group_auth.add_argument(
        "-k",
        action="store_true",
        help="Use Kerberos authentication. Grabs credentials from ccache file (KRB5CCNAME)",
    )
    group_auth.add_argument(
        "-aesKey", action="store", type=str, metavar="hex key",
        help="AES key to use for Kerberos Authentication (128 or 256 bits)",
    )

    group_conn = parser.add_argument_group("Connection")
    group_conn.add_argument(
        "-dc-ip", action="store", type=str, metavar="ip address",
        help="IP Address of the domain controller",
    )
    group_conn.add_argument(
        "-port", action="store", type=int, default=None,
        help="target MSSQL port (default 1433, or the SQL Browser answer for named instances)",
    )
    group_conn.add_argument(
        "--browser-timeout", type=int, default=5,
        help="Seconds to wait for the SQL Browser service (default 5)",
    )

    actions_group = parser.add_argument_group(
        "Actions", "Actions to perform upon successful connection."
    )
    actions_group.add_argument(
        "-q", "--query", type=str, default=None,
        help="T-SQL command to execute on every target.",
    )
    actions_group.add_argument(
        "-a", "--action", type=str, nargs=argparse.REMAINDER, default=None,
        help="Action to perform on every target, followed by its arguments.",
    )
    actions_group.add_argument(
        "--list-actions", action="store_true", help="List all available actions and exit."
    )

    advanced_group = parser.add_argument_group("Advanced Options")
    advanced_group.add_argument(
        "--enable-exception", action="store_true",
        help="Stop at the first failure instead of warning and continuing.",
    )
    advanced_group.add_argument(
        "--format", default="markdown", choices=OutputFormatter.get_available_formats(),
        help="Output format of records (default markdown)",
    )
    advanced_group.add_argument(
        "--runspace-timeout", type=float, default=Runspace.default_timeout,
        help="Seconds to wait for a runspace to stop before abandoning it (default 30)",
    )
    advanced_group.add_argument(
        "--keepalive-interval", type=float, default=60.0,
        help="Seconds between keep-alive queries in interactive mode, 0 disables them (default 60)",
    )
    advanced_group.add_argument("--debug", action="store_true", help="Enable debug logging mode.")

    return parser


def parse_target(target: str) -> Tuple[str, str, str, str]:
    """
    Splits [[domain/]username[:password]@]remote.

    >>> parse_target("CORP/admin:P@ss@SQL01\\\\PROD")
    ('CORP', 'admin', 'P@ss', 'SQL01\\\\PROD')
    """
    domain, username, password, remote_name = TARGET_REGEX.match(target).groups("")

    # In case the password contains '@'
    if "@" in remote_name:
        password = password + "@" + remote_name.rpartition("@")[0]
        remote_name = remote_name.rpartition("@")[2]

    return domain, username, password, remote_name


def build_credentials(args: argparse.Namespace, targets: List[Tuple[str, str, str, str]]) -> Credentials:
    """
    Credentials shared by every target: explicit options first, then the
    first target carrying a username.
    """
    domain, username, password = "", "", ""
    for target_domain, target_username, target_password, _ in targets:
        if target_username:
            domain, username, password = target_domain, target_username, target_password
            break

    username = args.username if args.username is not None else username
    password = args.password if args.password is not None else password
    domain = args.domain if args.domain is not None else domain

    if args.aesKey is not None:
        args.k = True

    if (
        password == ""
        and username != ""
        and args.hashes is None
        and args.no_pass is False
        and args.aesKey is None
    ):
        password = getpass("Password:")

    return Credentials(
        username=username,
        password=password,
        domain=domain,
        use_windows_auth=args.windows_auth,
        hashes=args.hashes,
        aes_key=args.aesKey,
        kerberos_auth=args.k,
        kdc_host=args.dc_ip,
    )


def build_servers(args: argparse.Namespace, targets: List[Tuple[str, str, str, str]]) -> List[Server]:
    servers = []
    for _, _, _, remote_name in targets:
        server = Server.parse_server(remote_name, database=args.db)
        if args.port is not None and not server.port_explicit:
            server = Server(
                hostname=server.hostname, port=args.port, database=server.database, instance=server.instance
            )
        servers.append(server)
    return servers


def run_action(runner: InstanceRunner, servers: List[Server], action_name: str, argument_list: List[str]) -> int:
    action = ActionFactory.get_action(action_name)
    if action is None:
        logger.error(f"Unknown action: {action_name}")
        return 1

    try:
        action.validate_arguments(argument_list=argument_list)
    except ValueError as ve:
        logger.error(f"Argument validation error: {ve}")
        return 1

    records = runner.run(action, servers)
    runner.display(records)
    return 1 if runner.failures else 0


def run_terminal(
    runner: InstanceRunner, server: Server, log_level: str, keepalive_interval: float = 60.0
) -> int:
    with runner.connector.open(server) as database_context:
        mapped_user, system_user = database_context.user_service.get_info()
        logger.info(f"Logged in on {database_context.server.sql_instance} as {system_user}")
        logger.info(f"Mapped to the user: {mapped_user}")
        if not database_context.user_service.is_admin():
            logger.warning("Not a sysadmin, most administration actions will fail")
        Terminal(
            database_context, runner, log_level=log_level, keepalive_interval=keepalive_interval
        ).start()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = logbook.setup_logging(level="DEBUG" if args.debug else "INFO")

    if args.list_actions:
        helper.display_all_commands()
        return 0

    if not args.targets:
        parser.print_help()
        return 1

    OutputFormatter.set_format(args.format)
    Runspace.default_timeout = args.runspace_timeout

    try:
        targets = [parse_target(target) for target in args.targets]
        servers = build_servers(args, targets)
    except ValueError as e:
        logger.error(str(e))
        return 1

    connector = InstanceConnector(build_credentials(args, targets), browser_timeout=args.browser_timeout)
    runner = InstanceRunner(connector, enable_exception=args.enable_exception)

    try:
        if args.query:
            return run_action(runner, servers, "query", [args.query])

        if args.action:
            return run_action(runner, servers, args.action[0], args.action[1:])

        if len(servers) > 1:
            logger.warning(f"Interactive mode uses the first target only ({servers[0].display_name})")
        return run_terminal(runner, servers[0], log_level, keepalive_interval=args.keepalive_interval)

    except ActionError as e:
        logger.error(str(e))
        return 1
    except MssqlAdminError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""
Command-line interface for Gate Repo.

Provides CLI commands for server management:
- init-db: Initialize the database schema
- create-user: Create a local user
- link-credential: Link a GitHub access token to a user
- issue-session: Issue a session token for a user
- reconcile: List invitations issued without a committed grant
- run: Start the API server

Usage:
    gate-repo init-db
    gate-repo create-user --username alice
    gate-repo link-credential --user-id 1 --token ghp_... [--account-id 583231]
    gate-repo issue-session --user-id 1
    gate-repo reconcile [--json]
    gate-repo run [--host HOST] [--port PORT]
"""

import argparse
import json
import sys


def cmd_init_db(args: argparse.Namespace) -> int:
    """
    Initialize the database schema.

    Returns:
        0 on success, 1 on error
    """
    from gate_repo.db.schema import init_database

    try:
        init_database()
        print("Database initialized successfully.")
        return 0
    except Exception as e:
        print(f"Error initializing database: {e}", file=sys.stderr)
        return 1


def cmd_create_user(args: argparse.Namespace) -> int:
    """Create a local user and print its id."""
    from gate_repo.db import users_repo

    username = (args.username or "").strip()
    if not username:
        print("Error: --username must not be empty.", file=sys.stderr)
        return 1

    try:
        user_id = users_repo.create_user(username)
    except Exception as e:
        print(f"Error creating user: {e}", file=sys.stderr)
        return 1

    if user_id is None:
        print(f"Error: user '{username}' already exists.", file=sys.stderr)
        return 1
    print(f"Created user '{username}' with id {user_id}.")
    return 0


def cmd_link_credential(args: argparse.Namespace) -> int:
    """Link an access token to an existing user.

    The newest linked credential for a provider is the one the access flow uses.
    """
    from gate_repo.db import users_repo

    token = (args.token or "").strip()
    if not token:
        print("Error: --token must not be empty.", file=sys.stderr)
        return 1

    try:
        if not users_repo.user_exists(args.user_id):
            print(f"Error: user {args.user_id} does not exist.", file=sys.stderr)
            return 1
        users_repo.link_credential(
            args.user_id,
            token,
            provider=args.provider,
            provider_account_id=args.account_id,
        )
    except Exception as e:
        print(f"Error linking credential: {e}", file=sys.stderr)
        return 1

    print(f"Linked {args.provider} credential to user {args.user_id}.")
    return 0


def cmd_issue_session(args: argparse.Namespace) -> int:
    """Issue a session token and print it on stdout."""
    from gate_repo.db import sessions_repo, users_repo

    try:
        if not users_repo.user_exists(args.user_id):
            print(f"Error: user {args.user_id} does not exist.", file=sys.stderr)
            return 1
        session_id = sessions_repo.create_session(args.user_id)
    except Exception as e:
        print(f"Error issuing session: {e}", file=sys.stderr)
        return 1

    print(session_id)
    return 0


def cmd_reconcile(args: argparse.Namespace) -> int:
    """
    Print invitations that were issued but never reached a committed grant.

    Returns:
        0 when nothing is outstanding, 2 when entries need attention, 1 on error
    """
    from gate_repo.audit import outstanding_invitations

    try:
        outstanding = outstanding_invitations()
    except Exception as e:
        print(f"Error reading audit ledger: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(outstanding, indent=2, sort_keys=True, default=str))
    elif not outstanding:
        print("No outstanding invitations.")
    else:
        print(f"{len(outstanding)} outstanding invitation(s):")
        for entry in outstanding:
            print(
                f"  gate={entry.get('gate_id')} invitation={entry.get('invitation_id')} "
                f"user={entry.get('username')} last={entry.get('last_event')} "
                f"issued={entry.get('issued_at')}"
            )
    return 2 if outstanding else 0


def cmd_run(args: argparse.Namespace) -> int:
    """
    Start the API server with uvicorn.

    Returns:
        0 on clean shutdown, 1 on error
    """
    import uvicorn

    from gate_repo.config import config, print_config_summary
    from gate_repo.logging_setup import configure_logging

    configure_logging()
    print_config_summary()

    host = args.host or config.server.host
    port = args.port or config.server.port

    try:
        from gate_repo.api.server import app

        uvicorn.run(app, host=host, port=port, log_config=None)
        return 0
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        return 1


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="gate-repo",
        description="Gate Repo - token-gated GitHub repository invitations",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser(
        "init-db",
        help="Initialize the database schema",
        description="Create the users, accounts, sessions and gates tables.",
    )
    init_parser.set_defaults(func=cmd_init_db)

    user_parser = subparsers.add_parser("create-user", help="Create a local user")
    user_parser.add_argument("--username", required=True, help="Unique username")
    user_parser.set_defaults(func=cmd_create_user)

    link_parser = subparsers.add_parser(
        "link-credential",
        help="Link a GitHub access token to a user",
        description=(
            "Link an external access token to a user. "
            "The most recently linked token for a provider wins."
        ),
    )
    link_parser.add_argument("--user-id", type=int, required=True, help="Local user id")
    link_parser.add_argument("--token", required=True, help="Access token")
    link_parser.add_argument("--provider", default="github", help="Provider key (default: github)")
    link_parser.add_argument(
        "--account-id",
        default=None,
        help="Numeric account id on the provider (used to resolve the invitee's login)",
    )
    link_parser.set_defaults(func=cmd_link_credential)

    session_parser = subparsers.add_parser("issue-session", help="Issue a session token")
    session_parser.add_argument("--user-id", type=int, required=True, help="Local user id")
    session_parser.set_defaults(func=cmd_issue_session)

    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="List invitations without a committed grant",
        description=(
            "Read the invitations audit stream and print invitations that were "
            "issued but never reached access.granted."
        ),
    )
    reconcile_parser.add_argument("--json", action="store_true", help="Print JSON")
    reconcile_parser.set_defaults(func=cmd_reconcile)

    run_parser = subparsers.add_parser("run", help="Run the API server")
    run_parser.add_argument(
        "--port",
        "-p",
        type=int,
        help="API server port (default: 8000, or GATE_PORT env var)",
    )
    run_parser.add_argument(
        "--host",
        type=str,
        help="Host to bind to (default: 0.0.0.0, or GATE_HOST env var)",
    )
    run_parser.set_defaults(func=cmd_run)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

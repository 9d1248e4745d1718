"""
Deploy initialisation script - runs after the database is ready.
Creates the tables and, with --reset-admin, restores the main admin account.
"""
import argparse
import asyncio
import sys


async def init_database(reset_admin: bool) -> int:
    """Initialize database tables (and optionally the admin account)."""
    from secret_santa.admin import AdminService
    from secret_santa.auth import SessionRegistry
    from secret_santa.config import get_settings
    from secret_santa.database import build_engine, build_session_factory, init_db
    from secret_santa.directory import Directory

    settings = get_settings()
    engine = build_engine(settings.database_url)
    print("Initializing database tables...")
    try:
        await init_db(engine)
        print("✓ Database initialized successfully!")

        if reset_admin:
            async with build_session_factory(engine)() as session:
                admin = AdminService(session, Directory(session), SessionRegistry())
                result = await admin.reset_admin(settings.admin_default_password)
            if not result.success:
                print(f"✗ Admin reset failed: {result.error}")
                return 1
            print("✓ Admin reset successfully")
        return 0
    except Exception as e:
        print(f"✗ Error initializing database: {e}")
        return 1
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--reset-admin", action="store_true", help="recreate the admin account with the default password")
    args = parser.parse_args()
    sys.exit(asyncio.run(init_database(args.reset_admin)))

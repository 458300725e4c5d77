import sys

from loguru import logger

from lodge_access.config import load_env_file
from lodge_access.models import get_db_manager
from lodge_access.store import LodgeStore
from lodge_api.auth import issue_token


def main():
    if len(sys.argv) < 2:
        logger.error("Usage: python main.py <member_id>")
        sys.exit(1)

    load_env_file()
    member_id = sys.argv[1]
    manager = get_db_manager()

    try:
        with manager.get_session_context() as session:
            principal = LodgeStore(session).principal_for(member_id)
        if principal is None:
            logger.error(f"Member {member_id} does not exist or is deactivated")
            sys.exit(1)

        token = issue_token(principal.id)
        if token is None:
            logger.critical("JWT_SECRET is not configured")
            sys.exit(1)

        logger.success(f"Issued token for {principal.id} ({principal.global_role})")
        print(token)

    except Exception as e:
        logger.exception(f"Fatal error during execution: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

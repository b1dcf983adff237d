"""Create the BulkyBook schema and seed roles, the admin user and reference data."""

from src.bulkybook.bootstrap import Bootstrapper
from src.bulkybook.logging import configure_logging


def main() -> None:
    configure_logging()
    bootstrapper = Bootstrapper()
    bootstrapper.configure_services()
    try:
        bootstrapper.seed_database()
    finally:
        if bootstrapper.database is not None:
            bootstrapper.database.dispose()
    print("Database initialized.")


if __name__ == "__main__":
    main()

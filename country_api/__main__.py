import argparse
import logging
import sys

import uvicorn
from sqlalchemy.exc import SQLAlchemyError

from country_api.config import settings

logger = logging.getLogger("country_api")


def serve(args) -> int:
    uvicorn.run("country_api.main:app", host=args.host, port=args.port or settings.PORT)
    return 0


def check_db(args) -> int:
    from country_api.database import ping_database
    from country_api.logging import init_logging

    init_logging()
    try:
        total = ping_database()
    except SQLAlchemyError as e:
        logger.error("Database connection failed: %s", e)
        return 1
    print(f"Connected successfully. Total countries in table: {total}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="country_api", description="Country Currency & Exchange API")
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="run the HTTP server")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=None, help="defaults to $PORT")
    p_serve.set_defaults(func=serve)

    p_check = sub.add_parser("check-db", help="verify the database connection")
    p_check.set_defaults(func=check_db)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

import argparse
import logging
import sys

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storefront.adapters.db.sqlalchemy import models
from storefront.adapters.db.sqlalchemy.uow import SQLAlchemyUnitOfWork
from storefront.config import Settings
from storefront.domain.user import Role, normalize_login
from storefront.logging_config import configure_logging

logger = logging.getLogger("storefront")


def init_db(settings: Settings) -> None:
    engine = create_engine(settings.database_url, echo=settings.sql_echo)
    models.Base.metadata.create_all(engine)
    logger.info("tables created")


def grant_admin(settings: Settings, identifier: str) -> int:
    # 最初の管理者を作るための手段 (以降は /admin/users/{id}/role で変更する)
    engine = create_engine(settings.database_url, echo=settings.sql_echo)
    with SQLAlchemyUnitOfWork(sessionmaker(bind=engine)) as uow:
        user = uow.users.get_by_login(normalize_login(identifier))
        if user is None:
            logger.error("no user matches %r", identifier)
            return 1
        uow.users.change_role(user.id, Role.ADMIN)
        uow.commit()
    logger.info("user id=%s is now an administrator", user.id.value)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="storefront")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")

    sub.add_parser("init-db", help="create database tables")

    grant = sub.add_parser("grant-admin", help="give the admin role to a user")
    grant.add_argument("identifier", help="email or username")

    args = parser.parse_args(argv)
    settings = Settings()
    configure_logging(settings.log_level)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("storefront.main:app", host=args.host, port=args.port, reload=args.reload)
        return 0
    if args.command == "init-db":
        init_db(settings)
        return 0
    return grant_admin(settings, args.identifier)


if __name__ == "__main__":
    sys.exit(main())

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from storefront.application.ports import UserRepository
from storefront.adapters.db.sqlalchemy import models
from storefront.domain.errors import ConflictError
from storefront.domain.user import BirthDate, Email, Role, StoreInfo, User, UserId, Username


def _sa_to_domain(user_model: models.User) -> User:
    # 永続化済みの値は検証済みなので model_construct で復元する
    return User(
        id=UserId(value=user_model.id),
        email=Email.model_construct(value=user_model.email),
        username=Username.model_construct(value=user_model.username),
        password_hash=user_model.password_hash,
        role=Role(user_model.role),
        birth_date=BirthDate(value=user_model.birth_date) if user_model.birth_date else None,
        store=StoreInfo(name=user_model.store_name, address=user_model.store_address),
        created_at=user_model.created_at,
    )


class SQLAlchemyUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def add(self, user: User) -> UserId:
        user_model = models.User(
            email=user.email.value,
            username=user.username.value,
            password_hash=user.password_hash,
            role=user.role.value,
            birth_date=user.birth_date.value if user.birth_date else None,
            store_name=user.store.name,
            store_address=user.store.address,
        )
        self.session.add(user_model)
        try:
            self.session.flush()
        except IntegrityError as e:
            # 同時登録で一意制約に負けた場合
            raise ConflictError("email or username is already registered") from e
        return UserId(value=user_model.id)

    def get(self, user_id: UserId) -> User | None:
        user_model = self.session.get(models.User, user_id.value, populate_existing=True)
        if user_model:
            return _sa_to_domain(user_model)
        return None

    def get_by_email(self, email: str) -> User | None:
        user_model = self.session.query(models.User).filter_by(email=email).first()
        if user_model:
            return _sa_to_domain(user_model)
        return None

    def get_by_username(self, username: str) -> User | None:
        user_model = self.session.query(models.User).filter_by(username=username).first()
        if user_model:
            return _sa_to_domain(user_model)
        return None

    def get_by_login(self, identifier: str) -> User | None:
        user_model = (
            self.session.query(models.User)
            .filter(or_(models.User.email == identifier, models.User.username == identifier))
            .first()
        )
        if user_model:
            return _sa_to_domain(user_model)
        return None

    def list_all(self) -> list[User]:
        user_models = self.session.query(models.User).order_by(models.User.id.desc()).all()
        return [_sa_to_domain(user_model) for user_model in user_models]

    def save(self, user: User) -> None:
        assert user.id is not None, "user is not persisted"
        user_model = self.session.get(models.User, user.id.value)
        assert user_model is not None
        user_model.password_hash = user.password_hash
        user_model.birth_date = user.birth_date.value if user.birth_date else None
        user_model.store_name = user.store.name
        user_model.store_address = user.store.address

    def change_role(self, user_id: UserId, new_role: Role) -> bool:
        # 行ロックに対応した DB では管理者の行をすべてロックしてから更新する
        self.session.execute(
            select(models.User.id).where(models.User.role == Role.ADMIN.value).with_for_update()
        ).all()

        stmt = update(models.User).where(models.User.id == user_id.value)
        if new_role != Role.ADMIN:
            # 管理者が2人以上いるときだけ降格できる (件数チェックと更新を1文で行う)
            admins = aliased(models.User, name="admins")
            admin_ids = select(admins.id).where(admins.role == Role.ADMIN.value).subquery("admin_ids")
            admin_count = select(func.count()).select_from(admin_ids).scalar_subquery()
            stmt = stmt.where(or_(models.User.role != Role.ADMIN.value, admin_count > 1))
        stmt = stmt.values(role=new_role.value)

        result = self.session.execute(stmt, execution_options={"synchronize_session": False})
        return result.rowcount > 0

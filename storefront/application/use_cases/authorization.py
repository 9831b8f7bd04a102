import logging

from storefront.application.dto import UserOutput
from storefront.application.ports import UnitOfWork
from storefront.domain.errors import ForbiddenError, NotFoundError, ValidationError
from storefront.domain.user import Principal, Role, UserId

logger = logging.getLogger(__name__)


def require_role(principal: Principal, role: Role) -> Principal:
    if principal.role != role:
        raise ForbiddenError(f"{role.value} role required")
    return principal


def parse_role(value: str | None) -> Role:
    try:
        return Role(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError("role must be 'user' or 'admin'") from None


class ListUsersUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def execute(self, principal: Principal) -> list[UserOutput]:
        require_role(principal, Role.ADMIN)
        with self.uow:
            return [UserOutput.of(user) for user in self.uow.users.list_all()]


class SetUserRoleUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def execute(self, principal: Principal, target_user_id: int, new_role: str | None) -> UserOutput:
        require_role(principal, Role.ADMIN)
        role = parse_role(new_role)
        target_id = UserId(value=target_user_id)

        with self.uow:
            target = self.uow.users.get(target_id)
            if target is None:
                raise NotFoundError("user not found")
            if target.role == role:
                return UserOutput.of(target)

            # 件数チェックと更新は1文の条件付き UPDATE で行う (別々に投げると最後の管理者を降格できてしまう)
            if not self.uow.users.change_role(target_id, role):
                logger.warning(
                    "refused to demote last administrator id=%s (requested by id=%s)",
                    target_id.value,
                    principal.user_id.value,
                )
                raise ValidationError("cannot demote the last administrator")
            self.uow.commit()
            logger.info(
                "user id=%s role changed to %s by id=%s",
                target_id.value,
                role.value,
                principal.user_id.value,
            )
            updated = self.uow.users.get(target_id)
            assert updated is not None
            return UserOutput.of(updated)

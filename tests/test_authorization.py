import threading

import pytest

from storefront.adapters.db.sqlalchemy import models
from storefront.application.use_cases.authorization import ListUsersUseCase, SetUserRoleUseCase, require_role
from storefront.domain.errors import ForbiddenError, NotFoundError, ValidationError
from storefront.domain.user import Role, UserId


def admin_count(session_factory) -> int:
    with session_factory() as session:
        return session.query(models.User).filter_by(role="admin").count()


def test_require_role(register, principal_of):
    user = principal_of(register().id)
    admin = principal_of(register("root@example.com", "root", role=Role.ADMIN).id)

    assert require_role(admin, Role.ADMIN) is admin
    with pytest.raises(ForbiddenError):
        require_role(user, Role.ADMIN)


def test_only_admins_change_roles(register, uow_factory, principal_of):
    user = register()
    other = register("bob@example.com", "bob")

    with pytest.raises(ForbiddenError):
        SetUserRoleUseCase(uow_factory()).execute(principal_of(user.id), other.id, "admin")
    with pytest.raises(ForbiddenError):
        ListUsersUseCase(uow_factory()).execute(principal_of(user.id))


def test_promote_then_demote(register, uow_factory, principal_of, session_factory):
    root = principal_of(register("root@example.com", "root", role=Role.ADMIN).id)
    bob = register("bob@example.com", "bob")

    promoted = SetUserRoleUseCase(uow_factory()).execute(root, bob.id, "ADMIN")
    assert promoted.role == "admin"
    assert admin_count(session_factory) == 2

    demoted = SetUserRoleUseCase(uow_factory()).execute(root, bob.id, "user")
    assert demoted.role == "user"
    assert admin_count(session_factory) == 1


def test_last_admin_cannot_be_demoted(register, uow_factory, principal_of, session_factory):
    root = principal_of(register("root@example.com", "root", role=Role.ADMIN).id)

    with pytest.raises(ValidationError, match="cannot demote the last administrator"):
        SetUserRoleUseCase(uow_factory()).execute(root, root.user_id.value, "user")

    assert admin_count(session_factory) == 1
    with uow_factory() as uow:
        assert uow.users.get(root.user_id).role == Role.ADMIN


def test_second_demotion_of_two_admins_is_refused(register, uow_factory, principal_of, session_factory):
    a = principal_of(register("a@example.com", "admin_a", role=Role.ADMIN).id)
    b = principal_of(register("b@example.com", "admin_b", role=Role.ADMIN).id)

    SetUserRoleUseCase(uow_factory()).execute(a, b.user_id.value, "user")
    # a の権限で a 自身を降格しようとしても最後の管理者なので拒否される
    with pytest.raises(ValidationError):
        SetUserRoleUseCase(uow_factory()).execute(a, a.user_id.value, "user")
    assert admin_count(session_factory) == 1


def test_guarded_update_refuses_when_count_already_one(register, uow_factory, session_factory):
    a = register("a@example.com", "admin_a", role=Role.ADMIN)
    b = register("b@example.com", "admin_b", role=Role.ADMIN)

    # 両方のリクエストが「管理者は2人」と読んだ後に更新が届いた状況
    with uow_factory() as uow:
        assert uow.users.change_role(UserId(value=a.id), Role.USER) is True
        uow.commit()
    with uow_factory() as uow:
        assert uow.users.change_role(UserId(value=b.id), Role.USER) is False
        uow.commit()

    assert admin_count(session_factory) == 1


def test_concurrent_demotions_keep_one_admin(register, uow_factory, principal_of, session_factory):
    a = principal_of(register("a@example.com", "admin_a", role=Role.ADMIN).id)
    b = principal_of(register("b@example.com", "admin_b", role=Role.ADMIN).id)
    barrier = threading.Barrier(2)
    results = []

    def demote(actor, target_id):
        barrier.wait()
        try:
            SetUserRoleUseCase(uow_factory()).execute(actor, target_id, "user")
            results.append("ok")
        except ValidationError:
            results.append("refused")

    threads = [
        threading.Thread(target=demote, args=(a, b.user_id.value)),
        threading.Thread(target=demote, args=(b, a.user_id.value)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(results) == ["ok", "refused"]
    assert admin_count(session_factory) == 1


def test_unknown_target_and_role(register, uow_factory, principal_of):
    root = principal_of(register("root@example.com", "root", role=Role.ADMIN).id)

    with pytest.raises(NotFoundError):
        SetUserRoleUseCase(uow_factory()).execute(root, 999, "user")
    with pytest.raises(ValidationError, match="role must be"):
        SetUserRoleUseCase(uow_factory()).execute(root, root.user_id.value, "superuser")


def test_list_users_is_redacted(register, uow_factory, principal_of):
    root = principal_of(register("root@example.com", "root", role=Role.ADMIN).id)
    register("bob@example.com", "bob")

    users = ListUsersUseCase(uow_factory()).execute(root)

    assert {u.username for u in users} == {"root", "bob"}
    assert all("password_hash" not in u.model_dump() for u in users)

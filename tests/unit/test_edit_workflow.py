from __future__ import annotations

import json
import os

import pytest
import toml

from fatcat_cli.application.ports.catalog_port import ResponseTag
from fatcat_cli.application.workflows.edit_workflow import EditWorkflow
from fatcat_cli.domain.errors import (
    AuthError,
    ConfigurationError,
    EditorError,
    EntityModelError,
    NotFoundError,
    TransportError,
    UnsupportedOperation,
)
from fatcat_cli.domain.mutation import Mutation
from fatcat_cli.domain.specifier import (
    ChangelogSpecifier,
    EntityKind,
    ExactSpecifier,
    parse_specifier,
)

IDENT = "hsmo6p4smrganpb3fndaj2lon4"
EG = "aaaaaaaaaaaaaaaaaaaaaaaaaa"
RELEASE = ExactSpecifier(EntityKind.RELEASE, IDENT)


def test_create_validates_then_posts(fake_api):
    fake_api.respond("create_release", {"edit_id": "e1", "ident": IDENT, "editgroup_id": EG})
    result = EditWorkflow(fake_api).create(EntityKind.RELEASE, '{"title": "T"}\n', EG)
    assert result["edit_id"] == "e1"
    assert fake_api.called("create_release") == [((EG, {"title": "T"}), {})]


def test_create_with_invalid_json_never_calls_api(fake_api):
    with pytest.raises(EntityModelError) as exc:
        EditWorkflow(fake_api).create(EntityKind.CONTAINER, "{broken", EG)
    assert str(exc.value).startswith("parsing and creating container entity: ")
    assert fake_api.calls == []


def test_update_with_mutations_fetches_mutates_and_puts(fake_api):
    fake_api.respond("get_release", {"ident": IDENT, "revision": "r1", "title": "Old", "refs": []})
    fake_api.respond("update_release", {"edit_id": "e2"})

    result = EditWorkflow(fake_api).update(
        RELEASE, EG, mutations=[Mutation("title", "New"), Mutation("volume", "3")]
    )

    assert result == {"edit_id": "e2"}
    (args, _), = fake_api.called("update_release")
    assert args == (EG, IDENT, {"ident": IDENT, "revision": "r1", "title": "New", "volume": "3", "refs": []})


def test_update_with_payload_resolves_lookup(fake_api):
    fake_api.respond("lookup_release", {"ident": IDENT, "title": "Old"})
    fake_api.respond("update_release", {"edit_id": "e3"})

    EditWorkflow(fake_api).update(parse_specifier("doi:10.1234/abc"), EG, json_text='{"title": "X"}')

    assert fake_api.called("update_release") == [((EG, IDENT, {"title": "X"}), {})]


def test_update_needs_payload_or_mutations(fake_api):
    with pytest.raises(ConfigurationError):
        EditWorkflow(fake_api).update(RELEASE, EG)


def test_update_rejects_invalid_mutation_after_fetch(fake_api):
    fake_api.respond("get_work", {"ident": IDENT})
    with pytest.raises(UnsupportedOperation):
        EditWorkflow(fake_api).update(
            ExactSpecifier(EntityKind.WORK, IDENT), EG, mutations=[Mutation("title", "x")]
        )
    assert fake_api.called("update_work") == []


@pytest.mark.parametrize(
    "spec",
    [ExactSpecifier(EntityKind.EDITGROUP, EG), ExactSpecifier(EntityKind.EDITOR, IDENT), ChangelogSpecifier(3)],
)
def test_entity_update_rejects_non_catalog_kinds(fake_api, spec):
    with pytest.raises(UnsupportedOperation):
        EditWorkflow(fake_api).update(spec, EG, json_text="{}")


def test_delete_dispatches_per_kind(fake_api):
    fake_api.respond("lookup_file", {"ident": IDENT, "sha1": "abc"})
    fake_api.respond("delete_file", {"edit_id": "e4"})

    result = EditWorkflow(fake_api).delete(parse_specifier("sha1:abc"), EG)

    assert result == {"edit_id": "e4"}
    assert fake_api.called("delete_file") == [((EG, IDENT), {})]


def test_delete_changelog_makes_no_sense(fake_api):
    with pytest.raises(UnsupportedOperation) as exc:
        EditWorkflow(fake_api).delete(ChangelogSpecifier(12), EG)
    assert "mutating this entity type doesn't make sense" in str(exc.value)


def test_delete_editgroup_is_unsupported(fake_api):
    with pytest.raises(UnsupportedOperation):
        EditWorkflow(fake_api).delete(ExactSpecifier(EntityKind.EDITGROUP, EG), EG)


def test_delete_not_found_keeps_context(fake_api):
    fake_api.respond("delete_release", {"error": "not-found", "message": "gone"}, tag=ResponseTag.NOT_FOUND)
    with pytest.raises(NotFoundError) as exc:
        EditWorkflow(fake_api).delete(RELEASE, EG)
    assert str(exc.value).startswith(f"delete entity: release_{IDENT}: ")


def test_edit_json_round_trip(fake_api):
    fake_api.respond("get_release", {"ident": IDENT, "title": "Old"})
    fake_api.respond("update_release", {"edit_id": "e5"})
    seen = {}

    def _editor(argv):
        seen["argv"] = argv
        path = argv[-1]
        with open(path, encoding="utf-8") as f:
            seen["before"] = json.loads(f.readline())
        with open(path, "w", encoding="utf-8") as f:
            f.write(json.dumps({"ident": IDENT, "title": "Edited"}) + "\n")
        return 0

    result = EditWorkflow(fake_api).edit(RELEASE, EG, "vim -n", json_format=True, run_editor=_editor)

    assert result == {"edit_id": "e5"}
    assert seen["argv"][:2] == ["vim", "-n"]
    assert seen["argv"][-1].endswith(".json")
    assert seen["before"] == {"ident": IDENT, "title": "Old"}
    assert not os.path.exists(seen["argv"][-1])
    assert fake_api.called("update_release") == [((EG, IDENT, {"ident": IDENT, "title": "Edited"}), {})]


def test_edit_toml_round_trip(fake_api):
    fake_api.respond("get_container", {"ident": IDENT, "name": "Old"})
    fake_api.respond("update_container", {"edit_id": "e6"})

    def _editor(argv):
        with open(argv[-1], encoding="utf-8") as f:
            data = toml.load(f)
        data["name"] = "Edited"
        with open(argv[-1], "w", encoding="utf-8") as f:
            toml.dump(data, f)
        return 0

    EditWorkflow(fake_api).edit(
        ExactSpecifier(EntityKind.CONTAINER, IDENT), EG, "nano", run_editor=_editor
    )

    assert fake_api.called("update_container") == [((EG, IDENT, {"ident": IDENT, "name": "Edited"}), {})]


def test_edit_aborts_when_editor_fails(fake_api):
    fake_api.respond("get_release", {"ident": IDENT, "title": "Old"})
    with pytest.raises(EditorError) as exc:
        EditWorkflow(fake_api).edit(RELEASE, EG, "false", run_editor=lambda argv: 1)
    assert "non-success status code (1)" in str(exc.value)
    assert fake_api.called("update_release") == []


def test_edit_ignores_failed_refetch(fake_api):
    fake_api.respond("get_release", {"ident": IDENT, "title": "Old"})
    fake_api.fail("get_release", TransportError("connection reset"))
    fake_api.respond("update_release", {"edit_id": "e7"})

    result = EditWorkflow(fake_api).edit(RELEASE, EG, "true", json_format=True, run_editor=lambda argv: 0)

    assert result == {"edit_id": "e7"}
    assert len(fake_api.called("get_release")) == 2


def test_create_editgroup_tags_agent(fake_api):
    fake_api.respond("create_editgroup", {"editgroup_id": EG, "description": "bulk fixes"})
    editgroup = EditWorkflow(fake_api).create_editgroup("bulk fixes")
    assert editgroup.editgroup_id == EG
    assert fake_api.called("create_editgroup") == [
        (({"description": "bulk fixes", "extra": {"agent": "fatcat-cli"}},), {})
    ]


def test_list_editgroups_requires_editor(fake_api):
    with pytest.raises(ConfigurationError):
        EditWorkflow(fake_api).list_editgroups()


def test_list_editgroups_defaults_to_token_editor(fake_api):
    fake_api.editor_id = "editor1"
    fake_api.respond("get_editor_editgroups", [{"editgroup_id": EG}, {"editgroup_id": IDENT}])
    editgroups = EditWorkflow(fake_api).list_editgroups(limit=5)
    assert [eg.editgroup_id for eg in editgroups] == [EG, IDENT]
    assert fake_api.called("get_editor_editgroups") == [(("editor1",), {"limit": 5})]


def test_reviewable_expands_editors(fake_api):
    fake_api.respond("get_editgroups_reviewable", [])
    assert EditWorkflow(fake_api).list_reviewable_editgroups() == []
    assert fake_api.called("get_editgroups_reviewable") == [((), {"expand": "editors", "limit": 20})]


@pytest.mark.parametrize("submit", [True, False])
def test_submit_and_unsubmit(fake_api, submit):
    fake_api.respond("get_editgroup", {"editgroup_id": EG, "description": "d"})
    fake_api.respond("update_editgroup", {"editgroup_id": EG, "submitted": "2020-01-01T00:00:00Z"})
    workflow = EditWorkflow(fake_api)

    eg = workflow.submit_editgroup(EG) if submit else workflow.unsubmit_editgroup(EG)

    assert eg.submitted == "2020-01-01T00:00:00Z"
    (args, kwargs), = fake_api.called("update_editgroup")
    assert args == (EG, {"editgroup_id": EG, "description": "d"})
    assert kwargs == {"submit": submit}


def test_accept_editgroup(fake_api):
    fake_api.respond("accept_editgroup", {"success": True, "message": "merged"})
    assert EditWorkflow(fake_api).accept_editgroup(EG)["message"] == "merged"


def test_status_without_token(fake_api):
    fake_api.respond("get_changelog", [{"index": 42, "editgroup_id": EG}])
    status = EditWorkflow(fake_api).status()
    assert status.to_dict() == {
        "has_api_token": False,
        "api_host": "https://api.test",
        "last_changelog": 42,
        "account": None,
    }
    assert fake_api.called("auth_check") == []


def test_status_when_api_unreachable(fake_api):
    fake_api.fail("get_changelog", TransportError("connection refused"))
    status = EditWorkflow(fake_api).status()
    assert status.last_changelog is None


@pytest.mark.parametrize("body", [{"index": 5}, "5", []])
def test_status_with_malformed_changelog_body(fake_api, body):
    fake_api.respond("get_changelog", body)
    status = EditWorkflow(fake_api).status()
    assert status.last_changelog is None
    assert fake_api.called("auth_check") == []


def test_status_with_token_fetches_account(fake_api):
    fake_api.has_api_token = True
    fake_api.editor_id = "editor1"
    fake_api.respond("get_changelog", [{"index": 42}])
    fake_api.respond("auth_check", {"success": True, "message": "ok"})
    fake_api.respond("get_editor", {"editor_id": "editor1", "username": "bot", "is_bot": True})

    status = EditWorkflow(fake_api).status()

    assert status.account.username == "bot"
    assert status.to_dict()["account"]["is_bot"] is True


def test_status_with_rejected_token(fake_api):
    fake_api.has_api_token = True
    fake_api.editor_id = "editor1"
    fake_api.respond("get_changelog", [{"index": 42}])
    fake_api.respond("auth_check", {"error": "auth", "message": "expired"}, tag=ResponseTag.NOT_AUTHORIZED)

    with pytest.raises(AuthError) as exc:
        EditWorkflow(fake_api).status()
    assert str(exc.value).startswith("check auth token: ")

"""
tests/core/org/test_org_walker.py - 조직 트리 탐색기 테스트
"""

from core.org import NodeKind, OrgNode, OrgTreeWalker
from core.state import Outcome, RunStateStore

ROOT = OrgNode(id="r-root", name="Root", kind=NodeKind.ROOT)


def _ids(nodes, kind=None):
    return [n.id for n in nodes if kind is None or n.kind is kind]


class TestWalkOrder:
    """탐색 순서와 중복 제거"""

    def test_yields_every_account_once_in_stable_order(self, fake_org):
        nodes = list(OrgTreeWalker(fake_org).walk(ROOT))

        assert _ids(nodes) == [
            "r-root",
            "999999999999",
            "ou-dev",
            "333333333333",
            "ou-sbx",
            "444444444444",
            "ou-prod",
            "111111111111",
            "222222222222",
        ]

    def test_accounts_carry_ou_name(self, fake_org):
        accounts = {n.id: n for n in OrgTreeWalker(fake_org).walk(ROOT) if n.is_account}

        assert accounts["999999999999"].ou_name == "root"
        assert accounts["111111111111"].ou_name == "Prod"
        assert accounts["444444444444"].ou_name == "Sandbox"

    def test_accepts_root_id_string(self, fake_org):
        nodes = list(OrgTreeWalker(fake_org).walk("r-root"))

        assert nodes[0].kind is NodeKind.ROOT
        assert len(_ids(nodes, NodeKind.ACCOUNT)) == 5

    def test_duplicate_ids_are_yielded_once(self, fake_org_factory):
        """API가 같은 계정/OU를 여러 부모에서 반환해도 한 번만"""
        org = fake_org_factory(
            ous={"r-root": [("ou-a", "A"), ("ou-b", "B")], "ou-b": [("ou-a", "A")]},
            accounts={"ou-a": ["111111111111"], "ou-b": ["111111111111", "222222222222"]},
        )

        walker = OrgTreeWalker(org)
        nodes = list(walker.walk(ROOT))

        assert _ids(nodes, NodeKind.ACCOUNT) == ["111111111111", "222222222222"]
        assert _ids(nodes, NodeKind.OU) == ["ou-a", "ou-b"]
        assert walker.accounts_found == 2

    def test_walk_is_lazy(self, fake_org):
        """첫 계정을 받는 시점에는 하위 OU를 아직 조회하지 않음"""
        walker = OrgTreeWalker(fake_org)
        gen = walker.walk(ROOT)

        next(gen)  # root
        first_account = next(gen)

        assert first_account.id == "999999999999"
        assert ("ou-prod", "ous") not in fake_org.calls


class TestListingFailures:
    """목록 조회 실패 시 형제 노드 계속"""

    def test_failed_ou_listing_continues_with_siblings(self, fake_org):
        fake_org.failing = {("ou-dev", "accounts")}

        walker = OrgTreeWalker(fake_org)
        accounts = _ids(walker.walk(ROOT), NodeKind.ACCOUNT)

        assert "333333333333" not in accounts
        # 하위 OU 목록은 성공했으므로 Sandbox는 계속 탐색
        assert "444444444444" in accounts
        assert "111111111111" in accounts
        assert walker.listing_failures == 1

    def test_failed_child_ou_listing_skips_subtree_only(self, fake_org):
        fake_org.failing = {("ou-dev", "ous")}

        walker = OrgTreeWalker(fake_org)
        accounts = _ids(walker.walk(ROOT), NodeKind.ACCOUNT)

        assert "444444444444" not in accounts
        assert "333333333333" in accounts
        assert "222222222222" in accounts


class TestWalkWithState:
    """실행 상태 연동"""

    def test_skips_accounts_complete_for_all_kinds(self, fake_org, tmp_path):
        with RunStateStore.load(tmp_path / "state.json") as store:
            store.record("111111111111", "s3", Outcome.DONE)
            store.record("111111111111", "ec2", Outcome.DENIED)
            store.record("222222222222", "s3", Outcome.DONE)
            store.record("222222222222", "ec2", Outcome.FAILED)

            walker = OrgTreeWalker(fake_org, store, resource_kinds=["s3", "ec2"])
            accounts = _ids(walker.walk(ROOT), NodeKind.ACCOUNT)

        assert "111111111111" not in accounts
        assert "222222222222" in accounts
        assert walker.skipped_accounts == 1

    def test_marks_fully_listed_containers_visited(self, fake_org, tmp_path):
        fake_org.failing = {("ou-prod", "ous")}

        with RunStateStore.load(tmp_path / "state.json") as store:
            list(OrgTreeWalker(fake_org, store, resource_kinds=["s3"]).walk(ROOT))

            assert store.is_ou_visited("r-root")
            assert store.is_ou_visited("ou-sbx")
            assert not store.is_ou_visited("ou-prod")

"""Tests for the VerifyStatusPages use case."""

from unittest.mock import MagicMock

import pytest

from webfleet.application.use_cases.verify_status_pages import VerifyStatusPages
from webfleet.domain.entities.instance import InstanceRole, ProvisionedInstance
from webfleet.domain.services.status_page import InstanceMetadata, render_status_page


def _instance(n):
    return ProvisionedInstance(
        instance_id=f"i-{n}",
        name=f"webserver-{n}",
        role=InstanceRole.MANAGED,
        public_ip=f"54.0.0.{n}",
        private_ip=f"10.0.1.{n}",
        availability_zone="us-east-1a",
    )


class FakeHTTP:
    def __init__(self, pages):
        self.pages = pages

    async def fetch_page(self, address):
        page = self.pages[address]
        if isinstance(page, Exception):
            raise page
        return page


class TestVerifyStatusPages:
    @pytest.mark.asyncio
    async def test_all_pages_correct(self):
        fleet = [_instance(n) for n in (1, 2, 3)]
        pages = {
            i.address: render_status_page(InstanceMetadata.from_instance(i)) for i in fleet
        }
        report = await VerifyStatusPages(FakeHTTP(pages)).execute(fleet)

        assert report.ok
        assert report.checked == ("54.0.0.1", "54.0.0.2", "54.0.0.3")

    @pytest.mark.asyncio
    async def test_swapped_page_reported(self):
        a, b = _instance(1), _instance(2)
        pages = {
            a.address: render_status_page(InstanceMetadata.from_instance(b)),
            b.address: render_status_page(InstanceMetadata.from_instance(b)),
        }
        report = await VerifyStatusPages(FakeHTTP(pages)).execute([a, b])

        assert not report.ok
        assert all(p.startswith("i-1:") for p in report.problems)

    @pytest.mark.asyncio
    async def test_unreachable_node_is_a_problem_not_an_error(self):
        a = _instance(1)
        report = await VerifyStatusPages(
            FakeHTTP({a.address: ConnectionError("GET failed")})
        ).execute([a])
        assert report.problems == ("i-1: GET failed",)

    @pytest.mark.asyncio
    async def test_nodes_without_address_are_skipped(self):
        http = MagicMock()
        bare = ProvisionedInstance("i-9", "webserver-9", InstanceRole.MANAGED)
        report = await VerifyStatusPages(http).execute([bare])
        assert report.checked == ()
        http.fetch_page.assert_not_called()

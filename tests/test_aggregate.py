import unittest

import aiohttp

from domain_blacklist import aggregate, build, subtract_whitelist
from domain_blacklist.aggregate import aggregate_async, merge_names
from domain_blacklist.sources import RuleSource
from tests.utils.fake_http import FakeResponse, FakeSession
from tests.utils.tempdir import managed_temp_dir

EASYLIST = "https://lists.example.org/easylist.txt"
HOSTS = "https://hosts.example.net/hosts"
DOWN = "https://down.example.com/list.txt"


class SetAlgebraTests(unittest.TestCase):
    def test_merge_is_global_dedup(self):
        merged = merge_names([["a.com", "b.com"], ["b.com", "c.com"], []])
        self.assertEqual(merged, {"a.com", "b.com", "c.com"})

    def test_whitelist_subtraction(self):
        # Scenario D
        self.assertEqual(sorted(subtract_whitelist({"a.com", "b.com"}, ["b.com"])), ["a.com"])

    def test_whitelist_is_exact_match_only(self):
        rules = {"example.com", "sub.example.com", "*.example.org", "Upper.com"}
        result = subtract_whitelist(rules, {"example.com", "example.org", "upper.com"})
        self.assertEqual(result, {"sub.example.com", "*.example.org", "Upper.com"})

    def test_wildcard_removed_only_by_literal(self):
        result = subtract_whitelist({"*.example.org", "ads.example.org"}, {"*.example.org"})
        self.assertEqual(result, {"ads.example.org"})


class FileAggregationTests(unittest.TestCase):
    def test_scenario_a_comment_skipped(self):
        with managed_temp_dir("agg") as tmp:
            path = tmp / "a.txt"
            path.write_text("example.com\n# comment\n", encoding="utf-8")
            result = aggregate([RuleSource.file(str(path))], [])
        self.assertEqual(result, ["example.com"])

    def test_scenario_b_hosts_line_in_trusted_file_matches_nothing(self):
        with managed_temp_dir("agg") as tmp:
            path = tmp / "hosts.txt"
            path.write_text("1.2.3.4 ads.example.com\n", encoding="utf-8")
            result = aggregate([RuleSource.file(str(path))])
        self.assertEqual(result, [])

    def test_trust_override_applies_untrusted_grammars_to_file(self):
        with managed_temp_dir("agg") as tmp:
            path = tmp / "hosts.txt"
            path.write_text("1.2.3.4 ads.example.com\n*.wild.example\n", encoding="utf-8")
            result = aggregate([RuleSource.file(str(path), trusted=False)])
        self.assertEqual(result, ["ads.example.com"])

    def test_trusted_file_keeps_wildcards(self):
        with managed_temp_dir("agg") as tmp:
            path = tmp / "mine.txt"
            path.write_text("*.Tracker.example\nads.example.com\n", encoding="utf-8")
            result = aggregate([RuleSource.file(str(path))], ["ads.example.com"])
        self.assertEqual(result, ["*.tracker.example"])

    def test_global_dedup_and_sorting(self):
        with managed_temp_dir("agg") as tmp:
            first = tmp / "first.txt"
            second = tmp / "second.txt"
            first.write_text("zeta.example.com\nshared.example.com\n", encoding="utf-8")
            second.write_text("shared.example.com\nalpha.example.com\n", encoding="utf-8")
            result = aggregate([RuleSource.file(str(first)), RuleSource.file(str(second))])
        self.assertEqual(
            result, ["alpha.example.com", "shared.example.com", "zeta.example.com"]
        )

    def test_idempotent_and_order_independent(self):
        with managed_temp_dir("agg") as tmp:
            first = tmp / "first.txt"
            second = tmp / "second.txt"
            first.write_text("b.example.com\na.example.com\n", encoding="utf-8")
            second.write_text("c.example.com\na.example.com\n", encoding="utf-8")
            sources = [RuleSource.file(str(first)), RuleSource.file(str(second))]
            once = aggregate(sources, ["c.example.com"])
            twice = aggregate(sources, ["c.example.com"])
            reversed_run = aggregate(list(reversed(sources)), ["c.example.com"])
        self.assertEqual(once, ["a.example.com", "b.example.com"])
        self.assertEqual(once, twice)
        self.assertEqual(once, reversed_run)

    def test_empty_inputs_are_valid(self):
        self.assertEqual(aggregate([]), [])
        with managed_temp_dir("agg") as tmp:
            comments = tmp / "comments.txt"
            comments.write_text("# only\n\n# comments\n", encoding="utf-8")
            missing = tmp / "missing.txt"
            result = aggregate([RuleSource.file(str(comments)), RuleSource.file(str(missing))])
        self.assertEqual(result, [])


class RemoteAggregationTests(unittest.IsolatedAsyncioTestCase):
    async def test_scenario_c_ublock_rule(self):
        session = FakeSession({EASYLIST: FakeResponse(200, "||ads.example.com^$third-party\n")})
        result = await aggregate_async([RuleSource.remote(EASYLIST)], session=session)
        self.assertEqual(result.domains, ["ads.example.com"])

    async def test_first_domain_of_bom_prefixed_list_is_kept(self):
        body = "\ufeffads.example.com\ntrack.example.net\n".encode("utf-8")
        session = FakeSession({HOSTS: FakeResponse(200, body)})
        result = await aggregate_async([RuleSource.remote(HOSTS)], session=session)
        self.assertEqual(result.domains, ["ads.example.com", "track.example.net"])

    async def test_sync_entry_points_refuse_running_loop(self):
        with self.assertRaisesRegex(RuntimeError, "aggregate_async"):
            build([])
        with self.assertRaisesRegex(RuntimeError, "aggregate_async"):
            aggregate([])

    async def test_partial_failure_equals_succeeding_source_alone(self):
        body = "0.0.0.0 ads.example.com\n||track.example.net^\n"
        alone = await aggregate_async(
            [RuleSource.remote(HOSTS)],
            session=FakeSession({HOSTS: FakeResponse(200, body)}),
        )
        with self.assertLogs("domain_blacklist.fetch_sources", level="WARNING"):
            mixed = await aggregate_async(
                [RuleSource.remote(DOWN), RuleSource.remote(HOSTS)],
                session=FakeSession(
                    {
                        DOWN: aiohttp.ClientConnectionError("unreachable"),
                        HOSTS: FakeResponse(200, body),
                    }
                ),
            )
        self.assertEqual(mixed.domains, alone.domains)
        self.assertEqual(mixed.domains, ["ads.example.com", "track.example.net"])
        self.assertEqual([r.status for r in mixed.reports], ["failed", "ok"])
        self.assertEqual([r.locator for r in mixed.failed], [DOWN])

    async def test_mixed_sources_and_reports(self):
        session = FakeSession(
            {
                EASYLIST: FakeResponse(200, "! title\n||ads.example.com^\nads.example.com\n"),
                HOSTS: FakeResponse(404, "missing"),
            }
        )
        with managed_temp_dir("agg") as tmp:
            local = tmp / "local.txt"
            local.write_text("# mine\nads.example.com\n*.doubleclick.example\n", encoding="utf-8")
            with self.assertLogs("domain_blacklist.fetch_sources", level="WARNING"):
                result = await aggregate_async(
                    [
                        RuleSource.file(str(local)),
                        RuleSource.remote(EASYLIST),
                        RuleSource.remote(HOSTS),
                    ],
                    whitelist={"*.doubleclick.example"},
                    session=session,
                )
        self.assertEqual(result.domains, ["ads.example.com"])
        self.assertEqual(result.merged, 2)
        self.assertEqual(result.whitelisted, 1)

        local_report, remote_report, failed_report = result.reports
        self.assertTrue(local_report.trusted)
        self.assertEqual(local_report.kind, "file")
        self.assertEqual(local_report.stats["skipped_comments"], 1)
        self.assertEqual(local_report.names_out, 2)
        self.assertFalse(remote_report.trusted)
        self.assertEqual(remote_report.stats["unmatched"], 1)
        self.assertEqual(remote_report.names_out, 1)
        self.assertEqual(failed_report.status, "failed")
        self.assertEqual(failed_report.error, "HTTP 404")
        self.assertEqual(failed_report.names_out, 0)


class SyncEntryPointTests(unittest.TestCase):
    def test_build_with_injected_session(self):
        session = FakeSession({EASYLIST: FakeResponse(200, "B.example.com\na.example.com\n")})
        result = build([RuleSource.remote(EASYLIST)], ["b.example.com"], session=session)
        self.assertEqual(result.domains, ["a.example.com"])
        self.assertEqual(result.whitelisted, 1)

    def test_malformed_remote_locator_contributes_nothing(self):
        with managed_temp_dir("agg") as tmp:
            local = tmp / "local.txt"
            local.write_text("example.com\n", encoding="utf-8")
            with self.assertLogs("domain_blacklist.fetch_sources", level="WARNING"):
                result = aggregate(
                    [RuleSource.remote("not a url"), RuleSource.file(str(local))],
                    timeout=5,
                )
        self.assertEqual(result, ["example.com"])


if __name__ == "__main__":
    unittest.main()

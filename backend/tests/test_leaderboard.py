"""Startup submission and the sponsorship-aware leaderboard."""

from datetime import datetime, timedelta, timezone

from models import SponsorshipStatus, StartupMetricsHistory


def slugs(response):
    return [entry["slug"] for entry in response.json()]


class TestRanking:
    async def test_sponsors_rank_above_higher_mrr(self, client, make_startup):
        await make_startup("Alpha", mrr=10000)
        await make_startup("Beta", mrr=100, sponsorship=SponsorshipStatus.ACTIVE)

        response = await client.get("/api/startups")

        assert response.status_code == 200
        body = response.json()
        assert slugs(response) == ["beta", "alpha"]
        assert body[0]["rank"] == 1
        assert body[0]["is_sponsored"] is True
        assert body[0]["sponsorship"]["type"] == "featured_listing"
        assert body[1]["is_sponsored"] is False
        assert body[1]["sponsorship"] is None

    async def test_each_tier_sorted_by_metric(self, client, make_startup):
        await make_startup("Small Sponsor", mrr=50, sponsorship=SponsorshipStatus.ACTIVE)
        await make_startup("Big Sponsor", mrr=900, sponsorship=SponsorshipStatus.ACTIVE)
        await make_startup("Small", mrr=10)
        await make_startup("Big", mrr=5000)

        response = await client.get("/api/startups")

        assert slugs(response) == ["big-sponsor", "small-sponsor", "big", "small"]

    async def test_only_active_sponsorships_count(self, client, make_startup):
        await make_startup("Pending", mrr=1, sponsorship=SponsorshipStatus.PENDING)
        await make_startup("Cancelled", mrr=2, sponsorship=SponsorshipStatus.CANCELLED)
        await make_startup("Plain", mrr=3)

        response = await client.get("/api/startups")

        assert slugs(response) == ["plain", "cancelled", "pending"]
        assert not any(entry["is_sponsored"] for entry in response.json())

    async def test_sort_by_other_metric(self, client, make_startup):
        await make_startup("High MRR", mrr=1000, total_revenue=10)
        await make_startup("High Revenue", mrr=10, total_revenue=99999)

        by_mrr = await client.get("/api/startups")
        by_revenue = await client.get("/api/startups", params={"sort_by": "total_revenue"})

        assert slugs(by_mrr) == ["high-mrr", "high-revenue"]
        assert slugs(by_revenue) == ["high-revenue", "high-mrr"]

    async def test_invalid_sort_field(self, client):
        response = await client.get("/api/startups", params={"sort_by": "followers"})

        assert response.status_code == 422

    async def test_missing_metrics_rank_as_zero(self, client, make_startup):
        await make_startup("No Data")
        await make_startup("Some Data", mrr=1)

        response = await client.get("/api/startups")

        assert slugs(response) == ["some-data", "no-data"]
        assert response.json()[1]["metrics"] is None

    async def test_ties_keep_a_stable_order(self, client, make_startup):
        for name in ("One", "Two", "Three", "Four"):
            await make_startup(name, mrr=100)

        first = slugs(await client.get("/api/startups"))
        second = slugs(await client.get("/api/startups"))

        assert first == second
        assert sorted(first) == ["four", "one", "three", "two"]


class TestFilters:
    async def test_country_and_category(self, client, make_startup):
        await make_startup("Helsinki SaaS", country="FI", category="SaaS", mrr=1)
        await make_startup("Stockholm SaaS", country="SE", category="SaaS", mrr=2)
        await make_startup("Helsinki App", country="FI", category="App", mrr=3)

        by_country = await client.get("/api/startups", params={"country": "fi"})
        by_both = await client.get("/api/startups", params={"country": "FI", "category": "SaaS"})
        multiple = await client.get("/api/startups", params=[("country", "FI"), ("country", "SE")])

        assert slugs(by_country) == ["helsinki-app", "helsinki-saas"]
        assert slugs(by_both) == ["helsinki-saas"]
        assert len(multiple.json()) == 3

    async def test_provider_filter_excludes_unsynced(self, client, make_startup):
        await make_startup("Stripe Co", mrr=5, provider="stripe")
        await make_startup("Paddle Co", mrr=6, provider="paddle")
        await make_startup("No Metrics")

        response = await client.get("/api/startups", params={"provider": "stripe"})

        assert slugs(response) == ["stripe-co"]

    async def test_mrr_range(self, client, make_startup):
        await make_startup("Tiny", mrr=10)
        await make_startup("Mid", mrr=500)
        await make_startup("Huge", mrr=50000)

        response = await client.get("/api/startups", params={"min_mrr": 100, "max_mrr": 1000})

        assert slugs(response) == ["mid"]


class TestAggregates:
    async def test_totals(self, client, make_startup):
        await make_startup("A", mrr=100)
        await make_startup("B", mrr=250)
        await make_startup("C")

        response = await client.get("/api/startups/aggregates")

        assert response.json() == {"total_mrr": 350, "startup_count": 3}

    async def test_empty(self, client):
        response = await client.get("/api/startups/aggregates")

        assert response.json() == {"total_mrr": 0, "startup_count": 0}


class TestSubmission:
    async def test_submit_startup(self, client):
        response = await client.post("/api/startups", json={
            "name": "Acme Inc.",
            "website_url": "https://acme.example",
            "country": "fi",
            "category": "SaaS",
        })

        assert response.status_code == 201
        startup = response.json()["startup"]
        assert startup["slug"] == "acme-inc"
        assert startup["country"] == "FI"
        assert startup["id"]

    async def test_duplicate_slug(self, client, make_startup):
        await make_startup("Acme Inc.")

        response = await client.post("/api/startups", json={
            "name": "ACME inc",
            "website_url": "https://acme.example",
            "country": "FI",
            "category": "SaaS",
        })

        assert response.status_code == 409

    async def test_name_without_slug_characters(self, client):
        response = await client.post("/api/startups", json={
            "name": "!!!",
            "website_url": "https://x.example",
            "country": "FI",
            "category": "SaaS",
        })

        assert response.status_code == 400


class TestDetail:
    async def test_detail_with_metrics(self, client, make_startup):
        await make_startup("Acme Inc.", mrr=500, total_revenue=12000, last_30d_revenue=1500,
                           sponsorship=SponsorshipStatus.ACTIVE)

        response = await client.get("/api/startups/acme-inc")

        assert response.status_code == 200
        body = response.json()
        assert body["metrics"]["mrr"] == 500
        assert body["metrics"]["currency"] == "EUR"
        assert body["is_sponsored"] is True

    async def test_unknown_slug(self, client):
        assert (await client.get("/api/startups/ghost")).status_code == 404
        assert (await client.get("/api/startups/ghost/history")).status_code == 404

    async def test_history_window(self, client, make_startup, session_factory):
        startup = await make_startup("Acme Inc.", mrr=3)
        today = datetime.now(timezone.utc).date()
        async with session_factory() as session:
            for days_ago, mrr in ((40, 1), (5, 2), (0, 3)):
                session.add(StartupMetricsHistory(
                    startup_id=startup.id,
                    currency="EUR",
                    mrr=mrr,
                    total_revenue=0,
                    last_30d_revenue=0,
                    provider="stripe",
                    snapshot_date=today - timedelta(days=days_ago),
                ))
            await session.commit()

        everything = await client.get("/api/startups/acme-inc/history")
        recent = await client.get("/api/startups/acme-inc/history", params={"days": 30})

        assert [p["mrr"] for p in everything.json()] == [1, 2, 3]
        assert [p["mrr"] for p in recent.json()] == [2, 3]

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from cosmos_sync.config import FeedSourceConfig, TelemetrySourceConfig
from cosmos_sync.models import CatalogItem, SyncStatus
from cosmos_sync.sources import SyntheticTelemetrySource
from cosmos_sync.sources.telemetry import TEMPERATURE_RANGE, VOLTAGE_RANGE
from cosmos_sync.sync import CatalogService, FeedService, TelemetryService
from cosmos_sync.sync.catalog import GENERATION_KEY
from cosmos_sync.sync.feed import SCHEMAS, schema_for
from cosmos_sync.sync.telemetry import LATEST_KEY, history_window

JWST_PAYLOAD = {
    "statusCode": 200,
    "body": [
        {
            "id": "jw02731-o001_t017_nircam_clear-f444w_i2d.jpg",
            "observation_id": "jw02731-o001",
            "program": 2731,
            "location": "https://stsci.test/jw02731_i2d.jpg",
            "thumbnail": "https://stsci.test/jw02731_thumb.jpg",
            "details": {"suffix": "_i2d", "instruments": [{"instrument": "nircam"}]},
        },
        {"id": "raw-frame", "location": "https://stsci.test/raw.fits"},
    ],
}


def _jwst_config(**overrides) -> FeedSourceConfig:
    values = dict(
        name="jwst",
        url="https://api.jwst.test/all/type/jpg",
        api_key="secret",
        requires_api_key=True,
        items_path="body",
        schema_name="jwst_images",
    )
    values.update(overrides)
    return FeedSourceConfig(**values)


def test_catalog_sync_skips_malformed_records(cache, catalog_repo, stub_client) -> None:
    batch = [
        {"dataset_id": "OSD-1", "title": "Rodent Research", "updated_at": "2024-01-01T00:00:00Z"},
        {"title": "no identifier at all"},
        "not-an-object",
        {"id": "OSD-2", "name": "Plant Habitat", "state": "public", "modified": 1704067200},
    ]
    service = CatalogService(cache, stub_client([batch]), catalog_repo)
    result = service.sync()
    assert result.status is SyncStatus.SUCCESS
    assert result.fetched == 4
    assert result.saved == 2

    second = catalog_repo.get_by_dataset_id("OSD-2")
    assert second.title == "Plant Habitat"
    assert second.status == "public"
    assert second.updated_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert second.raw["name"] == "Plant Habitat"


def test_catalog_resync_is_idempotent_and_invalidates_pages(cache, catalog_repo, stub_client) -> None:
    batch = [{"dataset_id": "OSD-1", "title": "Rodent Research"}]
    client = stub_client([batch, [{"dataset_id": "OSD-1", "title": "Rodent Research v2"}, {"dataset_id": "OSD-3"}]])
    service = CatalogService(cache, client, catalog_repo)

    service.force_sync()
    assert cache.get(GENERATION_KEY) == "1"
    assert [item.title for item in service.get_list()] == ["Rodent Research"]
    assert service.get_item("OSD-1").title == "Rodent Research"

    service.force_sync()
    assert cache.get(GENERATION_KEY) == "2"
    assert catalog_repo.count() == 2
    assert {item.dataset_id for item in service.get_list()} == {"OSD-1", "OSD-3"}
    assert service.get_item("OSD-1").title == "Rodent Research v2"
    assert service.count() == 2
    assert [item.dataset_id for item in service.search("v2")] == ["OSD-1"]


def test_catalog_list_cache_serves_stale_page_within_generation(cache, catalog_repo, stub_client) -> None:
    service = CatalogService(cache, stub_client([[{"dataset_id": "OSD-1"}]]), catalog_repo)
    service.force_sync()
    assert len(service.get_list()) == 1
    catalog_repo.upsert_many([CatalogItem(dataset_id="OSD-9")])
    assert len(service.get_list()) == 1
    assert service.get_latest().dataset_id == "OSD-1"


def test_telemetry_sync_and_latest(cache, telemetry_repo) -> None:
    source = SyntheticTelemetrySource(TelemetrySourceConfig(batch_size=5), rng=random.Random(7))
    service = TelemetryService(cache, source, telemetry_repo)
    result = service.sync()
    assert (result.fetched, result.saved) == (5, 5)
    assert cache.exists(LATEST_KEY)

    latest = service.get_latest(3)
    assert len(latest) == 3
    assert latest[0].recorded_at > latest[1].recorded_at > latest[2].recorded_at
    for sample in latest:
        assert VOLTAGE_RANGE[0] <= sample.voltage <= VOLTAGE_RANGE[1]
        assert TEMPERATURE_RANGE[0] <= sample.temperature <= TEMPERATURE_RANGE[1]
        assert sample.source_file.startswith("telemetry_") and sample.source_file.endswith(".csv")
    assert len(service.get_latest(500)) == 5
    assert len(service.get_latest(0)) == 5
    assert service.stats().count == 5
    assert len(service.get_history()) == 5


def test_history_window_defaults_and_clamps() -> None:
    end = datetime(2024, 6, 30, tzinfo=timezone.utc)
    assert history_window(None, end) == (end - timedelta(hours=24), end)
    start, clamped_end = history_window(end - timedelta(days=90), end)
    assert clamped_end == end
    assert start == end - timedelta(days=30)
    narrow = end - timedelta(hours=2)
    assert history_window(narrow, end) == (narrow, end)


def test_feed_sync_and_jwst_items(cache, feed_repo, stub_client) -> None:
    config = _jwst_config()
    service = FeedService(cache, stub_client([JWST_PAYLOAD], name="jwst"), feed_repo, config)
    assert service.domain == "jwst"
    assert service.lock_key == "jwst:last_fetch"
    assert service.get_items() == []

    assert service.sync().status is SyncStatus.SUCCESS
    assert cache.exists("jwst:latest")
    items = service.get_items()
    assert items == [
        {
            "url": "https://stsci.test/jw02731_thumb.jpg",
            "obs_id": "jw02731-o001",
            "program": "2731",
            "suffix": "_i2d",
            "instruments": ["NIRCAM"],
            "link": "https://stsci.test/jw02731_i2d.jpg",
            "caption": "jw02731-o001 · P2731 · _i2d · NIRCAM",
        }
    ]
    assert len(service.get_history()) == 1


def test_feed_without_schema_has_no_items(cache, feed_repo, stub_client) -> None:
    config = FeedSourceConfig(name="apod", url="https://api.nasa.test/planetary/apod")
    service = FeedService(cache, stub_client([{"title": "Pillars"}]), feed_repo, config)
    service.force_sync()
    assert service.get_latest().payload == {"title": "Pillars"}
    assert service.get_items() == []


def test_schema_for_applies_items_path_override() -> None:
    assert schema_for(FeedSourceConfig(name="apod", url="https://x.test")) is None
    assert schema_for(_jwst_config(items_path="data.results")).items_path == "data.results"
    with pytest.raises(KeyError):
        schema_for(_jwst_config(schema_name="unknown"))


ASTRO_PAYLOAD = {
    "data": {
        "table": {
            "rows": [
                {
                    "entry": {"id": "sun", "name": "Sun"},
                    "cells": [
                        {
                            "name": "Sun",
                            "type": "total_solar_eclipse",
                            "eventHighlights": {"peak": {"date": "2024-04-08T18:17:00.000Z", "altitude": 41.5}},
                            "description": "Totality over North America",
                        }
                    ],
                },
                {
                    "entry": {"id": "moon", "name": "Moon"},
                    "cells": [
                        {"body": "Moon", "category": "occultation", "date": "2024-04-10T02:00:00Z", "mag": "-1.2"},
                        {"name": "Moon", "type": "eclipse"},
                        {"type": "transit", "time": "2024-04-11T00:00:00Z"},
                    ],
                },
            ]
        }
    }
}


def _astro_config() -> FeedSourceConfig:
    return FeedSourceConfig(
        name="astro",
        url="https://api.astronomy.test/api/v2/bodies/events",
        auth="basic",
        api_key="app-id",
        api_secret="app-secret",
        requires_api_key=True,
        schema_name="astro_events",
    )


def test_astro_events_are_matched_from_table_cells(cache, feed_repo, stub_client) -> None:
    service = FeedService(cache, stub_client([ASTRO_PAYLOAD], name="astro"), feed_repo, _astro_config())
    assert service.schema.items_path == "data.table.rows[].cells"
    service.force_sync()
    assert service.get_items() == [
        {
            "name": "Sun",
            "type": "total_solar_eclipse",
            "when": "2024-04-08T18:17:00+00:00",
            "magnitude": 0.0,
            "altitude": 41.5,
            "details": "Totality over North America",
        },
        {
            "name": "Moon",
            "type": "occultation",
            "when": "2024-04-10T02:00:00+00:00",
            "magnitude": -1.2,
            "altitude": 0.0,
            "details": "",
        },
    ]


@pytest.mark.parametrize(
    "payload",
    [
        {"data": {"table": {"rows": []}}},
        {"data": {"table": {"rows": "unavailable"}}},
        {"data": {"events": [{"name": "Mars", "type": "opposition", "time": "2025-01-16T00:00:00Z"}]}},
        {"data": {"table": {"rows": [{"cells": [{"name": "Mars", "type": "opposition", "time": "soon"}]}]}}},
    ],
)
def test_astro_events_without_a_match_yield_no_items(payload) -> None:
    assert SCHEMAS["astro_events"].match(payload) == []


def test_donki_flares_are_matched_from_list_body(cache, feed_repo, stub_client) -> None:
    body = {
        "items": [
            {
                "flrID": "2024-06-01T12:00:00-FLR-001",
                "beginTime": "2024-06-01T12:00Z",
                "peakTime": "2024-06-01T12:20Z",
                "classType": "M1.2",
                "sourceLocation": "S15E30",
                "instruments": [{"displayName": "GOES-P: EXIS 1.0-8.0"}],
                "link": "https://kauai.ccmc.test/DONKI/view/FLR/1",
            },
            {"classType": "X1.0", "peakTime": "2024-06-02T08:00Z"},
        ]
    }
    config = FeedSourceConfig(
        name="donki",
        url="https://api.nasa.test/DONKI/FLR",
        items_path="items",
        schema_name="donki_events",
    )
    service = FeedService(cache, stub_client([body], name="donki"), feed_repo, config)
    service.force_sync()
    assert service.get_items() == [
        {
            "id": "2024-06-01T12:00:00-FLR-001",
            "type": "M1.2",
            "when": "2024-06-01T12:20:00+00:00",
            "region": "S15E30",
            "instruments": ["GOES-P: EXIS 1.0-8.0"],
            "link": "https://kauai.ccmc.test/DONKI/view/FLR/1",
            "details": "",
        }
    ]

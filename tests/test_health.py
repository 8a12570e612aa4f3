"""Tests for service-level endpoints."""

from studygroup import __version__


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_root_reports_version(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json() == {"service": "Study Group", "version": __version__}

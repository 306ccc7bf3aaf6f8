"""Tests for the public booking rate limit"""
from unittest import mock
import unittest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.middleware.rate_limit_middleware import RateLimitMiddleware


def build_app(limit):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, requests_per_window=limit, window_seconds=60.0)

    @app.post("/api/v1/public/calendars/{share_id}/bookings")
    async def book(share_id: str):
        return {"share_id": share_id}

    @app.get("/api/v1/public/calendars/{share_id}/availability")
    async def availability(share_id: str):
        return {"share_id": share_id}

    @app.post("/api/v1/dashboard/calendars")
    async def create():
        return {}

    return app


class TestRateLimitMiddleware(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(build_app(limit=2))

    def test_third_booking_attempt_is_limited(self):
        url = "/api/v1/public/calendars/abc234def567/bookings"
        self.assertEqual(self.client.post(url).status_code, 200)
        self.assertEqual(self.client.post(url).status_code, 200)

        response = self.client.post(url)

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json()["error"], "rate_limited")
        self.assertIn("Retry-After", response.headers)

    def test_reads_are_not_counted(self):
        url = "/api/v1/public/calendars/abc234def567/availability"
        for _ in range(5):
            self.assertEqual(self.client.get(url).status_code, 200)

    def test_dashboard_posts_are_not_counted(self):
        for _ in range(5):
            self.assertEqual(self.client.post("/api/v1/dashboard/calendars").status_code, 200)


class TestClientTracking(unittest.TestCase):

    def setUp(self):
        self.middleware = RateLimitMiddleware(FastAPI(), requests_per_window=2, window_seconds=60.0)

    def test_idle_clients_are_forgotten(self):
        self.middleware.request_times = {
            "10.0.0.1": [100.0],
            "10.0.0.2": [90.0, 150.0],
            "10.0.0.3": [],
        }

        self.middleware._prune(165.0)

        self.assertEqual(self.middleware.request_times, {"10.0.0.2": [90.0, 150.0]})

    def test_client_is_dropped_once_its_window_passes(self):
        client = TestClient(build_app(limit=2))
        url = "/api/v1/public/calendars/abc234def567/bookings"

        with mock.patch("app.api.middleware.rate_limit_middleware.time") as clock:
            clock.time.return_value = 1000.0
            self.assertEqual(client.post(url).status_code, 200)
            self.assertEqual(client.post(url).status_code, 200)
            self.assertEqual(client.post(url).status_code, 429)

        with mock.patch("app.api.middleware.rate_limit_middleware.time") as clock:
            clock.time.return_value = 1061.0
            self.assertEqual(client.post(url).status_code, 200)


if __name__ == "__main__":
    unittest.main()

"""Tests for the Vote API HTTP surface.

Uses FastAPI's TestClient over the in-memory store.
"""

from fastapi.testclient import TestClient

from election_services.shared.errors import TransientStoreFailure
from election_services.vote_api.main import create_app
from election_services.vote_api.memory_store import InMemoryElectionStore


class UnavailableStore(InMemoryElectionStore):
    """Store whose database is unreachable for reads and votes."""

    async def list_elections(self):
        raise TransientStoreFailure()

    async def record_vote(self, voter_id, election_id, candidate_name):
        raise TransientStoreFailure()


class LegacyStatusStore(InMemoryElectionStore):
    """Store holding a document with a status the API does not know."""

    async def list_elections(self):
        return [
            {"id": "old", "title": "Archived", "status": "archived", "candidates": []},
            {"id": "e1", "title": "Mayor", "status": "open", "candidates": [{"name": "A", "votes": 2}]},
        ]


class TestAuthentication:
    """Every voter endpoint needs a bearer token."""

    def test_missing_token(self, api_client: TestClient):
        for path in ("/api/vote/elections", "/api/vote/results"):
            response = api_client.get(path)
            assert response.status_code == 401
            assert response.json()["error"] == "Unauthorized"
            assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, api_client: TestClient):
        response = api_client.get(
            "/api/vote/results",
            headers={"Authorization": "Bearer nonsense"}
        )
        assert response.status_code == 401

    def test_cast_without_token(self, api_client: TestClient, api_election):
        response = api_client.post(
            "/api/vote/cast",
            json={"electionId": api_election["id"], "candidateName": "A"}
        )
        assert response.status_code == 401


class TestVoteEndpoints:
    """Tests for /api/vote/*."""

    def test_list_elections(self, api_client: TestClient, api_election, make_headers):
        response = api_client.get("/api/vote/elections", headers=make_headers("v1"))

        assert response.status_code == 200
        assert response.json() == [{
            "id": api_election["id"],
            "title": "Class President",
            "status": "open",
            "candidates": [{"name": "A", "votes": 0}, {"name": "B", "votes": 0}],
        }]

    def test_cast_vote_flow(self, api_client: TestClient, api_election, make_headers):
        election_id = api_election["id"]

        response = api_client.post(
            "/api/vote/cast",
            json={"electionId": election_id, "candidateName": "A"},
            headers=make_headers("v1")
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Vote recorded successfully", "updatedVoteCount": 1}

        response = api_client.post(
            "/api/vote/cast",
            json={"electionId": election_id, "candidateName": "B"},
            headers=make_headers("v1")
        )
        assert response.status_code == 400
        assert response.json()["error"] == "DuplicateVote"

        response = api_client.post(
            "/api/vote/cast",
            json={"electionId": election_id, "candidateName": "B"},
            headers=make_headers("v2")
        )
        assert response.status_code == 200
        assert response.json()["updatedVoteCount"] == 1

        results = api_client.get("/api/vote/results", headers=make_headers("v1")).json()
        assert results[0]["candidates"] == [{"name": "A", "votes": 1}, {"name": "B", "votes": 1}]

    def test_invalid_candidate(self, api_client: TestClient, api_election, make_headers):
        response = api_client.post(
            "/api/vote/cast",
            json={"electionId": api_election["id"], "candidateName": "Z"},
            headers=make_headers("v3")
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "InvalidCandidate"
        assert body["details"]["candidate_name"] == "Z"

    def test_unknown_election(self, api_client: TestClient, api_election, make_headers):
        response = api_client.post(
            "/api/vote/cast",
            json={"electionId": "unknown-id", "candidateName": "A"},
            headers=make_headers("v4")
        )

        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    def test_cast_with_missing_fields(self, api_client: TestClient, make_headers):
        response = api_client.post(
            "/api/vote/cast",
            json={"electionId": "e1"},
            headers=make_headers("v1")
        )
        assert response.status_code == 422

    def test_cast_with_empty_election_id(self, api_client: TestClient, api_election, make_headers):
        response = api_client.post(
            "/api/vote/cast",
            json={"electionId": "", "candidateName": "A"},
            headers=make_headers("v1")
        )

        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    def test_cast_with_empty_candidate_name(self, api_client: TestClient, api_election, make_headers):
        response = api_client.post(
            "/api/vote/cast",
            json={"electionId": api_election["id"], "candidateName": ""},
            headers=make_headers("v1")
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidCandidate"

    def test_results_skip_unknown_status(self, make_headers):
        with TestClient(create_app(LegacyStatusStore())) as client:
            response = client.get("/api/vote/results", headers=make_headers("v1"))

        assert response.status_code == 200
        assert [e["id"] for e in response.json()] == ["e1"]

    def test_results_empty_is_array(self, api_client: TestClient, make_headers):
        response = api_client.get("/api/vote/results", headers=make_headers("v1"))

        assert response.status_code == 200
        assert response.json() == []

    def test_closed_election(self, api_client: TestClient, api_election, admin_headers, make_headers):
        election_id = api_election["id"]
        response = api_client.post(f"/api/admin/elections/{election_id}/close", headers=admin_headers)
        assert response.json()["status"] == "closed"

        response = api_client.post(
            "/api/vote/cast",
            json={"electionId": election_id, "candidateName": "A"},
            headers=make_headers("v1")
        )
        assert response.status_code == 409
        assert response.json()["error"] == "ElectionClosed"


class TestAdminEndpoints:
    """Tests for /api/admin/elections."""

    def test_voter_cannot_administer(self, api_client: TestClient, make_headers):
        response = api_client.post(
            "/api/admin/elections",
            json={"title": "Mayor", "candidates": ["A"]},
            headers=make_headers("v1")
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"

    def test_admin_requires_token(self, api_client: TestClient):
        assert api_client.get("/api/admin/elections").status_code == 401

    def test_create_election(self, api_client: TestClient, admin_headers):
        response = api_client.post(
            "/api/admin/elections",
            json={"title": "  Mayor ", "candidates": [" A", "B "]},
            headers=admin_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["title"] == "Mayor"
        assert body["status"] == "open"
        assert body["candidates"] == [{"name": "A", "votes": 0}, {"name": "B", "votes": 0}]

        listed = api_client.get("/api/admin/elections", headers=admin_headers).json()
        assert [e["id"] for e in listed] == [body["id"]]

    def test_create_rejects_duplicate_candidates(self, api_client: TestClient, admin_headers):
        response = api_client.post(
            "/api/admin/elections",
            json={"title": "Mayor", "candidates": ["A", "A"]},
            headers=admin_headers
        )
        assert response.status_code == 422

    def test_create_rejects_empty_candidates(self, api_client: TestClient, admin_headers):
        for candidates in ([], ["A", "  "]):
            response = api_client.post(
                "/api/admin/elections",
                json={"title": "Mayor", "candidates": candidates},
                headers=admin_headers
            )
            assert response.status_code == 422

    def test_create_rejects_blank_title(self, api_client: TestClient, admin_headers):
        response = api_client.post(
            "/api/admin/elections",
            json={"title": " ", "candidates": ["A"]},
            headers=admin_headers
        )
        assert response.status_code == 422

    def test_delete_election(self, api_client: TestClient, api_election, admin_headers):
        election_id = api_election["id"]

        response = api_client.delete(f"/api/admin/elections/{election_id}", headers=admin_headers)
        assert response.status_code == 200

        response = api_client.delete(f"/api/admin/elections/{election_id}", headers=admin_headers)
        assert response.status_code == 404

    def test_reopen_election(self, api_client: TestClient, api_election, admin_headers):
        election_id = api_election["id"]
        api_client.post(f"/api/admin/elections/{election_id}/close", headers=admin_headers)

        response = api_client.post(f"/api/admin/elections/{election_id}/open", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "open"

    def test_tally_check(self, api_client: TestClient, api_election, admin_headers, make_headers):
        election_id = api_election["id"]
        for voter, candidate in (("v1", "A"), ("v2", "A"), ("v3", "B"), ("v1", "B")):
            api_client.post(
                "/api/vote/cast",
                json={"electionId": election_id, "candidateName": candidate},
                headers=make_headers(voter)
            )

        response = api_client.get(f"/api/admin/elections/{election_id}/tally", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {
            "electionId": election_id,
            "recordedVotes": 3,
            "talliedVotes": 3,
            "consistent": True,
        }

    def test_status_change_unknown_election(self, api_client: TestClient, admin_headers):
        response = api_client.post("/api/admin/elections/missing/close", headers=admin_headers)
        assert response.status_code == 404


class TestServiceEndpoints:
    """Tests for health, metrics and root endpoints."""

    def test_health(self, api_client: TestClient):
        response = api_client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["services"] == {"store": "connected", "redis": "disabled"}

    def test_metrics(self, api_client: TestClient, api_election, make_headers):
        api_client.post(
            "/api/vote/cast",
            json={"electionId": api_election["id"], "candidateName": "A"},
            headers=make_headers("v1")
        )

        response = api_client.get("/metrics")

        assert response.status_code == 200
        assert "votes_cast_total" in response.text
        assert "http_request_duration_seconds" in response.text

    def test_root(self, api_client: TestClient):
        body = api_client.get("/").json()

        assert body["status"] == "running"
        assert body["endpoints"]["cast_vote"] == "/api/vote/cast"


class TestStoreUnavailable:
    """Store outages surface as a retryable 503."""

    def test_cast_vote(self, make_headers):
        with TestClient(create_app(UnavailableStore())) as client:
            response = client.post(
                "/api/vote/cast",
                json={"electionId": "e1", "candidateName": "A"},
                headers=make_headers("v1")
            )

        assert response.status_code == 503
        assert response.json()["error"] == "TransientStoreFailure"

    def test_results(self, make_headers):
        with TestClient(create_app(UnavailableStore())) as client:
            response = client.get("/api/vote/results", headers=make_headers("v1"))

        assert response.status_code == 503
        assert response.json()["error"] == "TransientStoreFailure"

"""
Tests for API endpoints.

Tests cover:
- POST /api/issues with auto-assignment
- GET /api/issues with filters and pagination
- GET /api/issues/nearby, /community and /my-issues
- Issue edit, soft delete and duplicate marking
- Issue timeline, status changes and feedback
- /api/admin department, user and assignment endpoints
- /api/analytics and /api/export
- /api/tasks triggers
- Staff authentication requirements
"""

import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession


def issue_payload(category_id, **overrides) -> dict:
    payload = {
        "title": "Streetlight out on Station Road",
        "description": "The streetlight opposite the bus depot has been dark for a week.",
        "category_id": str(category_id),
        "latitude": 23.3441,
        "longitude": 85.3096,
        "address": "Station Road",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
@pytest.mark.api
class TestPublicAPI:
    """Test suite for unauthenticated endpoints."""

    async def test_health_endpoint(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "civic-issue-reporter-api"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        # Health checks are not request-logged
        assert "X-Response-Time" not in response.headers

    async def test_root_endpoint(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Civic Issue Reporter API"
        assert data["health"] == "/health"
        assert response.headers["X-Response-Time"].endswith("ms")
        assert response.headers["X-Frame-Options"] == "DENY"

    async def test_list_categories_active_only(self, client: AsyncClient, create_category):
        await create_category(name="Water Supply", code="WTR")
        await create_category(name="Fire Hazard", code="FIR", is_emergency=True)
        await create_category(name="Retired", code="OLD", is_active=False)

        response = await client.get("/api/categories")

        assert response.status_code == 200
        names = [c["name"] for c in response.json()]
        # Emergencies are listed first
        assert names == ["Fire Hazard", "Water Supply"]


@pytest.mark.asyncio
@pytest.mark.api
class TestIssuesAPI:
    """Test suite for /api/issues endpoints."""

    async def test_submit_issue_auto_assigns(
        self, client: AsyncClient, create_category, create_department
    ):
        category = await create_category(default_priority="high")
        department = await create_department(handles=[(category, True, 1)])

        response = await client.post("/api/issues", json=issue_payload(category.id))

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "submitted"
        assert data["priority"] == "high"
        assert data["city"] == "Ranchi"
        assert data["assigned_department_id"] == str(department.id)
        assert department.current_active_issues == 1

    async def test_submit_issue_without_handler_stays_unassigned(
        self, client: AsyncClient, create_category
    ):
        category = await create_category()

        response = await client.post("/api/issues", json=issue_payload(category.id, priority="low"))

        assert response.status_code == 201
        assert response.json()["assigned_department_id"] is None
        assert response.json()["priority"] == "low"

    async def test_submit_issue_unknown_category(self, client: AsyncClient):
        response = await client.post("/api/issues", json=issue_payload(uuid4()))

        assert response.status_code == 400

    async def test_submit_issue_unknown_reporter(self, client: AsyncClient, create_category):
        category = await create_category()

        response = await client.post(
            "/api/issues", json=issue_payload(category.id, reported_by_id=str(uuid4()))
        )

        assert response.status_code == 400

    async def test_submit_issue_validation(self, client: AsyncClient, create_category):
        category = await create_category()

        response = await client.post(
            "/api/issues", json=issue_payload(category.id, latitude=123.0, title="Bad")
        )

        assert response.status_code == 422

    async def test_list_issues_filters(self, client: AsyncClient, create_category, create_issue):
        category = await create_category()
        await create_issue(category.id, title="Pothole near school", status="submitted")
        await create_issue(category.id, title="Garbage pile", status="in_progress", priority="high")
        await create_issue(category.id, title="Broken pipe", status="resolved")

        response = await client.get("/api/issues", params={"status": "submitted,in_progress"})
        assert response.json()["total"] == 2

        response = await client.get("/api/issues", params={"priority": "high"})
        assert [i["title"] for i in response.json()["items"]] == ["Garbage pile"]

        response = await client.get("/api/issues", params={"search": "pothole"})
        assert response.json()["total"] == 1

    async def test_list_issues_pagination(self, client: AsyncClient, create_category, create_issue):
        category = await create_category()
        for _ in range(5):
            await create_issue(category.id)

        response = await client.get("/api/issues", params={"page": 2, "per_page": 2})

        data = response.json()
        assert data["total"] == 5
        assert data["pages"] == 3
        assert data["page"] == 2
        assert len(data["items"]) == 2

    async def test_nearby_issues(self, client: AsyncClient, create_category, create_issue):
        category = await create_category()
        close = await create_issue(category.id, latitude=23.3445, longitude=85.3100)
        await create_issue(category.id, latitude=28.6139, longitude=77.2090)
        await create_issue(category.id, latitude=23.3446, longitude=85.3101, status="resolved")

        response = await client.get(
            "/api/issues/nearby",
            params={"latitude": 23.3441, "longitude": 85.3096, "radius_km": 5}
        )

        assert response.status_code == 200
        data = response.json()
        assert [i["id"] for i in data] == [str(close.id)]
        assert data[0]["distance_km"] < 0.1

    async def test_get_issue_not_found(self, client: AsyncClient):
        response = await client.get(f"/api/issues/{uuid4()}")

        assert response.status_code == 404

    async def test_status_change_and_timeline(
        self, client: AsyncClient, staff_header: dict, create_category
    ):
        category = await create_category()
        created = await client.post("/api/issues", json=issue_payload(category.id))
        issue_id = created.json()["id"]

        response = await client.post(
            f"/api/issues/{issue_id}/status",
            json={"status": "in_progress", "notes": "Crew dispatched", "internal_notes": "Ward 12 team"},
            headers=staff_header,
        )

        assert response.status_code == 201
        record = response.json()
        assert record["previous_status"] == "submitted"
        assert record["change_type"] == "progress"
        assert record["time_in_previous_status"] == 0

        public = await client.get(f"/api/issues/{issue_id}/status-updates")
        assert [u["status"] for u in public.json()] == ["submitted", "in_progress"]
        assert "internal_notes" not in public.json()[1]

        internal = await client.get(
            f"/api/issues/{issue_id}/status-updates",
            params={"include_internal": True},
            headers=staff_header,
        )
        assert internal.json()[1]["internal_notes"] == "Ward 12 team"

    async def test_internal_timeline_requires_staff(
        self, client: AsyncClient, invalid_staff_header: dict, create_category, create_issue
    ):
        category = await create_category()
        issue = await create_issue(category.id)

        response = await client.get(
            f"/api/issues/{issue.id}/status-updates", params={"include_internal": True}
        )
        assert response.status_code == 401

        response = await client.get(
            f"/api/issues/{issue.id}/status-updates", headers=invalid_staff_header
        )
        assert response.status_code == 401

    async def test_status_change_requires_staff(
        self, client: AsyncClient, create_category, create_issue
    ):
        category = await create_category()
        issue = await create_issue(category.id)

        response = await client.post(f"/api/issues/{issue.id}/status", json={"status": "open"})

        assert response.status_code == 401

    async def test_status_change_without_change_conflicts(
        self, client: AsyncClient, staff_header: dict, create_category, create_issue
    ):
        category = await create_category()
        issue = await create_issue(category.id, status="open")

        response = await client.post(
            f"/api/issues/{issue.id}/status", json={"status": "open"}, headers=staff_header
        )

        assert response.status_code == 409

    async def test_status_change_unknown_department(
        self, client: AsyncClient, staff_header: dict, create_category, create_issue
    ):
        category = await create_category()
        issue = await create_issue(category.id)

        response = await client.post(
            f"/api/issues/{issue.id}/status",
            json={"assigned_department_id": str(uuid4())},
            headers=staff_header,
        )

        assert response.status_code == 404

    async def test_feedback(self, client: AsyncClient, create_category, create_issue):
        category = await create_category()
        open_issue = await create_issue(category.id, status="in_progress")
        resolved = await create_issue(category.id, status="resolved")

        response = await client.post(f"/api/issues/{open_issue.id}/feedback", json={"rating": 4})
        assert response.status_code == 400

        response = await client.post(
            f"/api/issues/{resolved.id}/feedback", json={"rating": 5, "comment": "Quick fix"}
        )
        assert response.status_code == 200
        assert response.json()["feedback_rating"] == 5

        response = await client.post(f"/api/issues/{resolved.id}/feedback", json={"rating": 1})
        assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.api
class TestIssueMaintenanceAPI:
    """Test suite for editing, deleting and de-duplicating issues, and citizen views."""

    async def test_reporter_edits_issue(
        self, client: AsyncClient, staff_header: dict, create_category, create_user, create_issue
    ):
        category = await create_category()
        citizen = await create_user()
        issue = await create_issue(category.id, reported_by_id=citizen.id, priority="medium")

        response = await client.patch(
            f"/api/issues/{issue.id}",
            json={
                "title": "Streetlight still out",
                "priority": "high",
                "reported_by_id": str(citizen.id),
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Streetlight still out"
        assert data["priority"] == "high"

        timeline = await client.get(
            f"/api/issues/{issue.id}/status-updates",
            params={"include_internal": True},
            headers=staff_header,
        )
        record = timeline.json()[-1]
        assert record["priority_changed"] is True
        assert record["change_reason"] == "citizen_request"
        assert record["updated_by_name"] == citizen.full_name

    async def test_edit_requires_reporter_or_staff(
        self, client: AsyncClient, staff_header: dict, create_category, create_user, create_issue
    ):
        category = await create_category()
        citizen = await create_user()
        issue = await create_issue(category.id, reported_by_id=citizen.id)

        anonymous = await client.put(f"/api/issues/{issue.id}", json={"title": "Somebody else"})
        stranger = await client.put(
            f"/api/issues/{issue.id}",
            json={"title": "Somebody else", "reported_by_id": str(uuid4())},
        )
        staff = await client.put(
            f"/api/issues/{issue.id}", json={"title": "Edited by staff"}, headers=staff_header
        )

        assert anonymous.status_code == 403
        assert stranger.status_code == 403
        assert staff.status_code == 200
        assert staff.json()["title"] == "Edited by staff"

    async def test_resolved_issue_cannot_be_edited(
        self, client: AsyncClient, staff_header: dict, create_category, create_issue
    ):
        category = await create_category()
        issue = await create_issue(category.id, status="resolved")

        response = await client.put(
            f"/api/issues/{issue.id}", json={"title": "Too late to edit"}, headers=staff_header
        )

        assert response.status_code == 400

    async def test_reporter_deletes_submitted_issue(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        create_category,
        create_department,
        create_user,
    ):
        category = await create_category()
        department = await create_department(handles=[(category, True, 1)])
        citizen = await create_user()
        created = await client.post(
            "/api/issues", json=issue_payload(category.id, reported_by_id=str(citizen.id))
        )
        issue_id = created.json()["id"]

        response = await client.delete(
            f"/api/issues/{issue_id}", params={"reported_by_id": str(citizen.id)}
        )

        assert response.status_code == 200
        assert (await client.get(f"/api/issues/{issue_id}")).status_code == 404
        assert (await client.get("/api/issues")).json()["total"] == 0
        await db_session.refresh(department)
        assert department.current_active_issues == 0

        again = await client.delete(
            f"/api/issues/{issue_id}", params={"reported_by_id": str(citizen.id)}
        )
        assert again.status_code == 404

    async def test_delete_permissions(
        self, client: AsyncClient, staff_header: dict, create_category, create_user, create_issue
    ):
        category = await create_category()
        citizen = await create_user()
        in_progress = await create_issue(category.id, reported_by_id=citizen.id, status="in_progress")
        submitted = await create_issue(category.id, reported_by_id=citizen.id)

        started = await client.delete(
            f"/api/issues/{in_progress.id}", params={"reported_by_id": str(citizen.id)}
        )
        stranger = await client.delete(
            f"/api/issues/{submitted.id}", params={"reported_by_id": str(uuid4())}
        )
        staff = await client.delete(f"/api/issues/{in_progress.id}", headers=staff_header)

        assert started.status_code == 403
        assert stranger.status_code == 403
        assert staff.status_code == 200

    async def test_mark_duplicate(
        self, client: AsyncClient, staff_header: dict, create_category, create_issue
    ):
        category = await create_category()
        original = await create_issue(category.id)
        duplicate = await create_issue(category.id)

        response = await client.post(
            f"/api/issues/{duplicate.id}/duplicate",
            json={"original_issue_id": str(original.id)},
            headers=staff_header,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "duplicate"
        assert data["is_duplicate"] is True
        assert data["original_issue_id"] == str(original.id)

        assert (await client.get(f"/api/issues/{original.id}")).json()["duplicate_count"] == 1

        timeline = await client.get(f"/api/issues/{duplicate.id}/status-updates")
        record = timeline.json()[-1]
        assert record["change_reason"] == "duplicate_found"
        assert record["notes"] == f"Marked as duplicate of issue {original.id}"

        again = await client.post(
            f"/api/issues/{duplicate.id}/duplicate",
            json={"original_issue_id": str(original.id)},
            headers=staff_header,
        )
        assert again.status_code == 409

    async def test_mark_duplicate_errors(
        self, client: AsyncClient, staff_header: dict, create_category, create_issue
    ):
        category = await create_category()
        issue = await create_issue(category.id)

        itself = await client.post(
            f"/api/issues/{issue.id}/duplicate",
            json={"original_issue_id": str(issue.id)},
            headers=staff_header,
        )
        missing = await client.post(
            f"/api/issues/{issue.id}/duplicate",
            json={"original_issue_id": str(uuid4())},
            headers=staff_header,
        )
        unauthenticated = await client.post(
            f"/api/issues/{issue.id}/duplicate", json={"original_issue_id": str(uuid4())}
        )

        assert itself.status_code == 400
        assert missing.status_code == 404
        assert unauthenticated.status_code == 401

    async def test_community_issues(self, client: AsyncClient, create_category, create_issue):
        category = await create_category()
        older = await create_issue(
            category.id, latitude=23.3491, longitude=85.3096, created_at=datetime(2026, 5, 1)
        )
        closed = await create_issue(
            category.id, latitude=23.3531, longitude=85.3096, status="closed",
            created_at=datetime(2026, 5, 2),
        )
        far = await create_issue(
            category.id, latitude=23.3741, longitude=85.3096, created_at=datetime(2026, 5, 3)
        )

        response = await client.get("/api/issues/community", params={"lat": 23.3441, "lng": 85.3096})

        assert response.status_code == 200
        assert [i["id"] for i in response.json()] == [str(closed.id), str(older.id)]

        wider = await client.get(
            "/api/issues/community", params={"lat": 23.3441, "lng": 85.3096, "range": 5}
        )
        assert [i["id"] for i in wider.json()] == [str(far.id), str(closed.id), str(older.id)]

        missing = await client.get("/api/issues/community", params={"lat": 23.3441})
        assert missing.status_code == 422

    async def test_my_issues(self, client: AsyncClient, create_category, create_user, create_issue):
        category = await create_category()
        citizen = await create_user()
        other = await create_user()
        for issue_status in ("submitted", "submitted", "in_progress", "resolved"):
            await create_issue(category.id, reported_by_id=citizen.id, status=issue_status)
        await create_issue(category.id, reported_by_id=citizen.id, deleted_at=datetime(2026, 5, 1))
        await create_issue(category.id, reported_by_id=other.id)

        response = await client.get(
            "/api/issues/my-issues", params={"reported_by_id": str(citizen.id)}
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["issues"]) == 4
        assert data["stats"] == {
            "total": 4,
            "submitted": 2,
            "in_progress": 1,
            "resolved": 1,
            "closed": 0,
        }


@pytest.mark.asyncio
@pytest.mark.api
class TestAdminAPI:
    """Test suite for /api/admin endpoints."""

    async def test_admin_requires_staff(self, client: AsyncClient, invalid_staff_header: dict):
        response = await client.get("/api/admin/departments")
        assert response.status_code == 401

        response = await client.get("/api/admin/departments", headers=invalid_staff_header)
        assert response.status_code == 401

    async def test_create_department(
        self, client: AsyncClient, staff_header: dict, create_category
    ):
        roads = await create_category()

        payload = {
            "name": "Public Works",
            "code": "pwd",
            "max_active_issues": 30,
            "handled_categories": [
                {"category_id": str(roads.id), "is_primary": True, "priority": 2}
            ],
        }
        response = await client.post("/api/admin/departments", json=payload, headers=staff_header)

        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "PWD"
        assert data["workload_percentage"] == 0
        assert data["handled_categories"] == [
            {"category_id": str(roads.id), "is_primary": True, "priority": 2}
        ]

        duplicate = await client.post("/api/admin/departments", json=payload, headers=staff_header)
        assert duplicate.status_code == 409

    async def test_create_department_unknown_category(self, client: AsyncClient, staff_header: dict):
        payload = {
            "name": "Ghost Department",
            "code": "GHO",
            "handled_categories": [{"category_id": str(uuid4())}],
        }

        response = await client.post("/api/admin/departments", json=payload, headers=staff_header)

        assert response.status_code == 400

    async def test_update_department(
        self, client: AsyncClient, staff_header: dict, create_department
    ):
        department = await create_department()

        response = await client.patch(
            f"/api/admin/departments/{department.id}",
            json={"operational_status": "maintenance", "response_time_compliance": 75},
            headers=staff_header,
        )

        assert response.status_code == 200
        assert response.json()["operational_status"] == "maintenance"
        assert response.json()["response_time_compliance"] == 75

    async def test_get_department_not_found(self, client: AsyncClient, staff_header: dict):
        response = await client.get(f"/api/admin/departments/{uuid4()}", headers=staff_header)

        assert response.status_code == 404

    async def test_create_user_duplicate_email(self, client: AsyncClient, staff_header: dict):
        payload = {"full_name": "Asha Kumari", "email": "asha@example.com", "role": "admin"}

        first = await client.post("/api/admin/users", json=payload, headers=staff_header)
        second = await client.post("/api/admin/users", json=payload, headers=staff_header)

        assert first.status_code == 201
        assert first.json()["role"] == "admin"
        assert second.status_code == 409

    async def test_auto_assign_issue(
        self, client: AsyncClient, staff_header: dict, create_category, create_department, create_issue
    ):
        category = await create_category()
        department = await create_department(handles=[(category, True, 1)])
        issue = await create_issue(category.id)

        response = await client.post(
            f"/api/admin/issues/{issue.id}/assign", json={}, headers=staff_header
        )

        assert response.status_code == 200
        data = response.json()
        assert data["assigned"] is True
        assert data["department_id"] == str(department.id)
        # 100 + 20 primary + 30 idle + 10 priority level
        assert data["score"] == 160

        again = await client.post(
            f"/api/admin/issues/{issue.id}/assign",
            json={"department_id": str(department.id)},
            headers=staff_header,
        )
        assert again.status_code == 409

    async def test_auto_assign_skips_full_department(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        staff_header: dict,
        create_category,
        create_department,
        create_issue,
    ):
        category = await create_category()
        # Satisfaction keeps the full department ranked first
        full = await create_department(
            handles=[(category, True, 1)],
            current_active_issues=5,
            max_active_issues=5,
            citizen_satisfaction_score=4.0,
        )
        spare = await create_department(handles=[(category, False, 1)])
        issue = await create_issue(category.id)

        response = await client.post(
            f"/api/admin/issues/{issue.id}/assign", json={}, headers=staff_header
        )

        assert response.status_code == 200
        data = response.json()
        assert data["department_id"] == str(spare.id)
        # 100 + 30 idle + 10 priority level
        assert data["score"] == 140

        await db_session.refresh(full)
        await db_session.refresh(spare)
        assert full.current_active_issues == 5
        assert spare.current_active_issues == 1
        assert spare.current_daily_issues == 1

    async def test_auto_reassign_moves_to_next_department(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        staff_header: dict,
        create_category,
        create_department,
        create_issue,
    ):
        category = await create_category()
        current = await create_department(handles=[(category, True, 1)], current_active_issues=1)
        other = await create_department(handles=[(category, False, 1)])
        issue = await create_issue(category.id, assigned_department_id=current.id)

        response = await client.post(
            f"/api/admin/issues/{issue.id}/assign", json={}, headers=staff_header
        )

        assert response.status_code == 200
        assert response.json()["department_id"] == str(other.id)

        await db_session.refresh(current)
        await db_session.refresh(other)
        assert current.current_active_issues == 0
        assert other.current_active_issues == 1

    async def test_assign_without_handler(
        self, client: AsyncClient, staff_header: dict, create_category, create_issue
    ):
        category = await create_category()
        issue = await create_issue(category.id)

        response = await client.post(
            f"/api/admin/issues/{issue.id}/assign", json={}, headers=staff_header
        )

        assert response.json() == {
            "issue_id": str(issue.id),
            "department_id": None,
            "department_name": None,
            "score": None,
            "assigned": False,
        }

    async def test_delete_status_update(
        self, client: AsyncClient, staff_header: dict, create_category, create_issue, create_status_update
    ):
        category = await create_category()
        issue = await create_issue(category.id)
        record = await create_status_update(issue.id)

        response = await client.delete(
            f"/api/admin/status-updates/{record.id}", headers=staff_header
        )
        assert response.status_code == 200

        timeline = await client.get(f"/api/issues/{issue.id}/status-updates")
        assert timeline.json() == []

        missing = await client.delete(f"/api/admin/status-updates/{uuid4()}", headers=staff_header)
        assert missing.status_code == 404

    async def test_dashboard(
        self, client: AsyncClient, staff_header: dict, create_category, create_issue
    ):
        category = await create_category()
        await create_issue(category.id, priority="critical", urgency_score=70)
        await create_issue(category.id, status="closed")

        response = await client.get("/api/admin/dashboard", headers=staff_header)

        assert response.status_code == 200
        data = response.json()
        assert data["summary"]["total_issues"] == 2
        assert len(data["urgent_issues"]) == 1


@pytest.mark.asyncio
@pytest.mark.api
class TestAnalyticsAndExportAPI:
    """Test suite for /api/analytics and /api/export endpoints."""

    async def test_analytics_requires_staff(self, client: AsyncClient, invalid_staff_header: dict):
        response = await client.get("/api/analytics/summary", headers=invalid_staff_header)

        assert response.status_code == 401

    async def test_analytics_summary(
        self, client: AsyncClient, staff_header: dict, create_category, create_issue
    ):
        category = await create_category()
        await create_issue(category.id)
        await create_issue(category.id, status="resolved")

        response = await client.get("/api/analytics/summary", headers=staff_header)

        assert response.status_code == 200
        assert response.json()["total_issues"] == 2
        assert response.json()["resolved_issues"] == 1

    async def test_analytics_overview(self, client: AsyncClient, staff_header: dict):
        response = await client.get("/api/analytics", params={"days": 7}, headers=staff_header)

        assert response.status_code == 200
        assert response.json()["period_days"] == 7
        assert len(response.json()["trend"]) == 7

    async def test_export_issues_csv(
        self, client: AsyncClient, staff_header: dict, create_category, create_issue
    ):
        category = await create_category(name="Drainage")
        await create_issue(category.id, title="Blocked drain")

        response = await client.get("/api/export/issues", headers=staff_header)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().splitlines()
        assert lines[0].startswith("Issue ID,Title,Category")
        assert "Blocked drain" in lines[1]
        assert "Drainage" in lines[1]

    async def test_export_departments_csv(
        self, client: AsyncClient, staff_header: dict, create_department
    ):
        await create_department(code="EXP")
        await create_department(code="OFF", is_active=False)

        response = await client.get("/api/export/departments", headers=staff_header)

        lines = response.text.strip().splitlines()
        assert len(lines) == 2
        assert "EXP" in lines[1]


@pytest.mark.asyncio
@pytest.mark.api
class TestTasksAPI:
    """Test suite for /api/tasks endpoints."""

    async def test_worker_status(self, client: AsyncClient, staff_header: dict):
        response = await client.get("/api/tasks/worker/status", headers=staff_header)

        assert response.status_code == 200
        assert "is_running" in response.json()

    async def test_trigger_statistics(self, client: AsyncClient, staff_header: dict):
        worker = MagicMock(is_running=False)
        worker.run_statistics_refresh = AsyncMock(return_value={"departments_updated": 0})

        with patch("civic_reporter.api.tasks.background_worker", worker):
            response = await client.post("/api/tasks/statistics", headers=staff_header)

        assert response.status_code == 200
        assert response.json()["task"] == "statistics_refresh"
        worker.run_statistics_refresh.assert_awaited_once()

    async def test_trigger_rejected_while_running(self, client: AsyncClient, staff_header: dict):
        worker = MagicMock(is_running=True)

        with patch("civic_reporter.api.tasks.background_worker", worker):
            response = await client.post("/api/tasks/daily-reset", headers=staff_header)

        assert response.status_code == 400

    async def test_sync_requires_configuration(self, client: AsyncClient, staff_header: dict):
        with patch("civic_reporter.api.tasks.settings") as mock_settings:
            mock_settings.external_sync_enabled = False
            response = await client.post("/api/tasks/sync-status-updates", headers=staff_header)

        assert response.status_code == 400

    async def test_tasks_require_staff(self, client: AsyncClient):
        response = await client.get("/api/tasks/scheduler/status")

        assert response.status_code == 401

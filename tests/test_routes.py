"""
HTTP tests for the access engine API.

Tests cover:
- Denials as 403 with a plain detail
- Not-authorized-to-administer as 403 with its own error code
- Integrity violations as 409 data_inconsistency
- Org, staff, users and permission check routes
"""
from access_engine.features.users.models import AppRole
from tests.conftest import make_delegation, make_node, make_staff, make_team


# ========== Health ==========

class TestHealth:
    """Tests for unauthenticated endpoints"""

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


# ========== Users ==========

class TestUserRoutes:
    """Tests for /users"""

    async def test_me_includes_links(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.mgr_a)
        response = await client.get("/users/me")
        assert response.status_code == 200
        body = response.json()
        assert body["org_code"] == "A"
        assert body["staff_id"] is None
        assert body["role"] == "manager"

    async def test_set_role_requires_admin(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.mgr_a)
        response = await client.patch(f"/users/{chart.candidate.id}/role", json={"role": "admin"})
        assert response.status_code == 403
        assert response.json()["error"] == "not_authorized_to_administer"

    async def test_admin_sets_role(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.admin)
        response = await client.patch(f"/users/{chart.candidate.id}/role", json={"role": "advisor"})
        assert response.status_code == 200
        assert response.json()["role"] == "advisor"


# ========== Org ==========

class TestOrgRoutes:
    """Tests for /org"""

    async def test_read_allowed(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.mgr_a)
        response = await client.get("/org/nodes/C")
        assert response.status_code == 200
        assert response.json()["manager_code"] == "B"

    async def test_read_denied(self, client, db, chart, act_as):
        """A denial is a 403 with a plain detail, not an error code"""
        await db.commit()
        act_as(chart.advisor_c)
        response = await client.get("/org/nodes/A")
        assert response.status_code == 403
        body = response.json()
        assert "detail" in body
        assert "error" not in body

    async def test_unknown_node(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.admin)
        response = await client.get("/org/nodes/NOPE")
        assert response.status_code == 404

    async def test_subordinates_with_levels(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.mgr_a)
        response = await client.get("/org/nodes/A/subordinates")
        assert response.status_code == 200
        entries = [(e["code"], e["depth"], e["hierarchy_level"]) for e in response.json()]
        assert entries == [("B", 1, "Direct"), ("C", 2, "Indirect 1")]

    async def test_managers(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.advisor_c)
        response = await client.get("/org/nodes/C/managers")
        assert [e["code"] for e in response.json()] == ["B", "A"]

    async def test_update_own_node_only(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.mgr_a)
        own = await client.patch("/org/nodes/A", json={"nickname": "Boss"})
        assert own.status_code == 200
        assert own.json()["nickname"] == "Boss"
        
        other = await client.patch("/org/nodes/B", json={"nickname": "Nope"})
        assert other.status_code == 403

    async def test_cycle_is_data_inconsistency(self, client, db, chart, act_as):
        """A corrupted chart surfaces as 409, not as a denial"""
        await make_node(db, "X", manager_code="Y")
        await make_node(db, "Y", manager_code="X")
        await db.commit()
        act_as(chart.mgr_a)
        response = await client.get("/org/nodes/X")
        assert response.status_code == 409
        assert response.json()["error"] == "data_inconsistency"

    async def test_team_routes(self, client, db, chart, act_as):
        team = await make_team(db, head_code="B")
        await make_node(db, "M1", team_id=team.id, name="Member")
        await db.commit()
        
        act_as(chart.mgr_a)
        response = await client.get(f"/org/teams/{team.id}/members")
        assert response.status_code == 200
        assert [node["code"] for node in response.json()] == ["M1"]
        
        act_as(chart.advisor_d)
        response = await client.get(f"/org/teams/{team.id}")
        assert response.status_code == 403


# ========== Staff ==========

class TestStaffRoutes:
    """Tests for /staff"""

    async def test_my_delegations(self, client, db, chart, act_as):
        await make_delegation(db, chart.staff.id, "A")
        await make_delegation(db, chart.staff.id, "D", active=False)
        await db.commit()
        act_as(chart.staff_user)
        
        response = await client.get("/staff/me/delegations")
        assert [d["org_code"] for d in response.json()] == ["A"]
        
        response = await client.get("/staff/me/delegations", params={"include_inactive": True})
        assert {d["org_code"] for d in response.json()} == {"A", "D"}

    async def test_my_delegations_without_staff_record(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.advisor_c)
        response = await client.get("/staff/me/delegations")
        assert response.json() == []

    async def test_read_delegation(self, client, db, chart, act_as):
        other = await make_staff(db, name="Other")
        delegation = await make_delegation(db, other.id, "D")
        await db.commit()
        
        act_as(chart.staff_user)
        assert (await client.get(f"/staff/delegations/{delegation.id}")).status_code == 403
        act_as(chart.advisor_d)
        assert (await client.get(f"/staff/delegations/{delegation.id}")).status_code == 200

    async def test_supporting_staff(self, client, db, chart, act_as):
        await make_delegation(db, chart.staff.id, "C")
        await db.commit()
        act_as(chart.mgr_b)
        response = await client.get("/staff/nodes/C/staff")
        assert [s["id"] for s in response.json()] == [chart.staff.id]


# ========== Permission check ==========

class TestPermissionCheck:
    """Tests for /permissions/check"""

    async def test_denial_is_a_result(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.mgr_b)
        response = await client.post("/permissions/check", json={"shape": "org_node", "org_code": "A"})
        assert response.status_code == 200
        assert response.json() == {"has_permission": False, "reason": "Permission denied"}

    async def test_allowed(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.mgr_b)
        response = await client.post("/permissions/check", json={"shape": "org_node", "org_code": "C"})
        assert response.json()["has_permission"] is True

    async def test_owned_resource(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.mgr_a)
        response = await client.post(
            "/permissions/check",
            json={"shape": "owned", "operation": "UPDATE", "owner_principal_id": chart.advisor_c.id}
        )
        assert response.json()["has_permission"] is False

    async def test_missing_target(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.mgr_a)
        response = await client.post("/permissions/check", json={"shape": "team"})
        assert response.status_code == 400

    async def test_audit_logs_admin_only(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.mgr_a)
        assert (await client.get("/permissions/audit-logs")).status_code == 403
        act_as(chart.admin)
        response = await client.get("/permissions/audit-logs")
        assert response.status_code == 200
        assert response.json()["total"] == 0


# ========== Admin ==========

class TestAdminRoutes:
    """Tests for /admin"""

    async def test_non_admin_refused(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.staff_user)
        response = await client.post(
            "/admin/delegations", json={"staff_id": chart.staff.id, "org_code": "C"}
        )
        assert response.status_code == 403
        assert response.json() == {
            "error": "not_authorized_to_administer",
            "detail": "Only admin users can assign staff to advisors",
        }

    async def test_link_conflict(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.admin)
        response = await client.post(
            "/admin/links/org-node", json={"principal_id": chart.advisor_d.id, "org_code": "C"}
        )
        assert response.status_code == 409
        assert response.json()["error"] == "data_inconsistency"

    async def test_bulk_assign(self, client, db, chart, act_as):
        await make_node(db, "C001")
        await make_node(db, "C003")
        await db.commit()
        act_as(chart.admin)
        response = await client.post(
            "/admin/delegations/bulk",
            json={"staff_id": chart.staff.id, "org_codes": ["C001", "UNKNOWN", "C003"]}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success_count"] == 2
        assert body["error_count"] == 1
        assert body["errors"] == ["UNKNOWN: org code not found"]

    async def test_create_deactivate_and_audit(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.admin)
        created = await client.post(
            "/admin/delegations", json={"staff_id": chart.staff.id, "org_code": "B"}
        )
        assert created.status_code == 201
        delegation_id = created.json()["id"]
        
        deactivated = await client.post(f"/admin/delegations/{delegation_id}/deactivate")
        assert deactivated.status_code == 200
        assert deactivated.json()["active"] is False
        
        logs = await client.get("/permissions/audit-logs", params={"resource_type": "delegation"})
        assert logs.json()["total"] == 2

    async def test_failed_mutation_rolls_back(self, client, db, chart, act_as):
        """A refused reassignment leaves the chart untouched"""
        await db.commit()
        act_as(chart.admin)
        response = await client.patch("/admin/nodes/A/manager", json={"manager_code": "C"})
        assert response.status_code == 409
        
        response = await client.get("/org/nodes/A")
        assert response.json()["manager_code"] is None

    async def test_create_and_delete_node(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.admin)
        created = await client.post("/admin/nodes", json={"code": "E", "manager_code": "D"})
        assert created.status_code == 201
        assert created.json()["status"] == "active"
        
        deleted = await client.delete("/admin/nodes/E")
        assert deleted.status_code == 204
        assert (await client.get("/org/nodes/E")).status_code == 404

    async def test_role_gate_uses_declared_role(self, client, db, chart, act_as):
        """Linking data alone never grants admin rights"""
        await db.commit()
        act_as(chart.mgr_a)
        response = await client.post("/admin/staff", json={"name": "Shadow"})
        assert response.status_code == 403
        assert chart.mgr_a.role is AppRole.MANAGER

    async def test_user_details(self, client, db, chart, act_as):
        await make_delegation(db, chart.staff.id, "B", active=False)
        await db.commit()
        act_as(chart.admin)
        response = await client.get(f"/admin/users/{chart.staff_user.id}")
        assert response.status_code == 200
        body = response.json()
        assert body["profile"]["staff_id"] == chart.staff.id
        assert [(d["org_code"], d["active"]) for d in body["delegations"]] == [("B", False)]

    async def test_user_details_requires_admin(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.mgr_a)
        response = await client.get(f"/admin/users/{chart.advisor_c.id}")
        assert response.status_code == 403
        assert response.json()["error"] == "not_authorized_to_administer"

    async def test_create_node_with_unknown_team(self, client, db, chart, act_as):
        await db.commit()
        act_as(chart.admin)
        response = await client.post("/admin/nodes", json={"code": "E", "team_id": "NO_SUCH_TEAM"})
        assert response.status_code == 409
        assert response.json() == {"error": "data_inconsistency", "detail": "team not found"}

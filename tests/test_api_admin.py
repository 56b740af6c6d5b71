from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from complaint_desk.core.database import AsyncSessionLocal
from complaint_desk.main import app
from complaint_desk.models.complaint import ComplaintCategory, ComplaintPriority, ComplaintStatus
from complaint_desk.models.notification import UserNotification
from complaint_desk.models.user import User, UserRoleEnum

from conftest import auth_headers, png_bytes

async def _notifications_for(user_id: str):
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(UserNotification).where(UserNotification.user_id == user_id))
        return list(result.scalars().unique().all())

async def test_role_gating(client, admin, viewer, make_complaint):
    complaint = await make_complaint()

    anonymous = await client.get("/api/admin/complaints")
    assert anonymous.status_code == 401
    assert anonymous.headers["www-authenticate"] == "Bearer"

    listed = await client.get("/api/admin/complaints", headers=auth_headers(viewer))
    assert listed.status_code == 200
    assert listed.json()["pagination"]["total_count"] == 1

    forbidden = await client.patch(
        f"/api/admin/complaints/{complaint.complaint_id}",
        json={"status": "RESOLVED"},
        headers=auth_headers(viewer),
    )
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "ไม่ได้รับอนุญาต - เฉพาะผู้ดูแลระบบเท่านั้น"

    deleted = await client.delete(
        f"/api/admin/complaints/{complaint.complaint_id}", headers=auth_headers(viewer)
    )
    assert deleted.status_code == 403

async def test_invalid_or_inactive_token_is_unauthorized(client, make_user):
    bad = await client.get("/api/admin/complaints", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401

    inactive = await make_user("gone@example.com", UserRoleEnum.admin, is_active=False)
    response = await client.get("/api/admin/complaints", headers=auth_headers(inactive))
    assert response.status_code == 401

async def test_login_returns_token_and_records_last_login(client, make_user):
    await make_user("admin@example.com", UserRoleEnum.admin, password="s3cret-pass")

    wrong = await client.post("/auth/token", data={"username": "admin@example.com", "password": "nope"})
    assert wrong.status_code == 401

    response = await client.post("/auth/token", data={"username": "admin@example.com", "password": "s3cret-pass"})
    assert response.status_code == 200
    token = response.json()["access_token"]
    assert response.json()["token_type"] == "bearer"
    assert response.json()["role"] == "admin"
    assert response.json()["expires_in"] == 3600

    listed = await client.get("/api/admin/complaints", headers={"Authorization": f"Bearer {token}"})
    assert listed.status_code == 200

    async with AsyncSessionLocal() as session:
        user = (await session.execute(select(User).where(User.email == "admin@example.com"))).scalars().one()
        assert user.last_login is not None

async def test_status_change_publishes_and_fans_out(client, admin, viewer, make_complaint):
    complaint = await make_complaint(title="ระบบล่ม")
    live = app.state.notification_broker.subscribe()

    response = await client.patch(
        f"/api/admin/complaints/{complaint.complaint_id}",
        json={"status": "IN_PROGRESS"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["complaint"]["status"] == "IN_PROGRESS"

    event = live.get_nowait()
    assert event["type"] == "status_update"
    assert event["complaint_id"] == complaint.complaint_id

    for user in (admin, viewer):
        rows = await _notifications_for(user.user_id)
        assert len(rows) == 1
        assert rows[0].read is False

async def test_non_status_update_does_not_notify(client, admin, make_complaint):
    complaint = await make_complaint()
    response = await client.patch(
        f"/api/admin/complaints/{complaint.complaint_id}",
        json={"priority": "URGENT", "category": "SAFETY"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["complaint"]["priority"] == "URGENT"
    assert response.json()["complaint"]["category"] == "SAFETY"
    assert await _notifications_for(admin.user_id) == []

async def test_update_rejects_unknown_fields_and_missing_complaint(client, admin, make_complaint):
    complaint = await make_complaint()
    unknown_field = await client.patch(
        f"/api/admin/complaints/{complaint.complaint_id}",
        json={"title": "changed"},
        headers=auth_headers(admin),
    )
    assert unknown_field.status_code == 400

    missing = await client.patch(
        "/api/admin/complaints/does-not-exist",
        json={"status": "CLOSED"},
        headers=auth_headers(admin),
    )
    assert missing.status_code == 404

async def test_delete_cascades_attachments(client, admin):
    created = await client.post(
        "/api/complaints",
        data={
            "title": "เครื่องพิมพ์เสีย",
            "description": "เครื่องพิมพ์ชั้นสองพิมพ์ไม่ออกตั้งแต่เมื่อวาน",
            "category": "EQUIPMENT",
            "priority": "LOW",
        },
        files=[("files", ("photo.png", png_bytes(), "image/png"))],
    )
    code = created.json()["tracking_code"]
    tracked = (await client.get(f"/api/complaints/tracking/{code}")).json()
    attachment_id = tracked["attachments"][0]["attachment_id"]

    deleted = await client.delete(f"/api/admin/complaints/{tracked['complaint_id']}", headers=auth_headers(admin))
    assert deleted.status_code == 200
    assert deleted.json()["success"] is True

    gone = await client.get(f"/api/admin/complaints/{tracked['complaint_id']}", headers=auth_headers(admin))
    assert gone.status_code == 404
    file_gone = await client.get(f"/api/files/{attachment_id}", headers=auth_headers(admin))
    assert file_gone.status_code == 404

async def test_list_filters_search_and_pagination(client, viewer, make_complaint):
    await make_complaint(title="ไฟดับทั้งชั้น", category=ComplaintCategory.SAFETY, priority=ComplaintPriority.URGENT)
    await make_complaint(title="เครื่องพิมพ์เสีย", category=ComplaintCategory.EQUIPMENT)
    await make_complaint(title="แอร์ไม่เย็น", category=ComplaintCategory.EQUIPMENT, status=ComplaintStatus.RESOLVED)

    headers = auth_headers(viewer)
    by_category = await client.get("/api/admin/complaints", params={"category": "EQUIPMENT"}, headers=headers)
    assert by_category.json()["pagination"]["total_count"] == 2
    assert by_category.json()["filters"] == {"category": "EQUIPMENT"}

    searched = await client.get("/api/admin/complaints", params={"search": "ไฟดับ"}, headers=headers)
    titles = [c["title"] for c in searched.json()["complaints"]]
    assert titles == ["ไฟดับทั้งชั้น"]

    paged = await client.get("/api/admin/complaints", params={"limit": 2, "page": 2}, headers=headers)
    pagination = paged.json()["pagination"]
    assert len(paged.json()["complaints"]) == 1
    assert pagination["total_pages"] == 2
    assert pagination["has_prev"] is True
    assert pagination["has_next"] is False

    too_big = await client.get("/api/admin/complaints", params={"limit": 500}, headers=headers)
    assert too_big.status_code == 400

async def test_search_matches_tracking_code(client, viewer, make_complaint):
    complaint = await make_complaint()
    await make_complaint()
    response = await client.get(
        "/api/admin/complaints", params={"search": complaint.tracking_code}, headers=auth_headers(viewer)
    )
    assert [c["complaint_id"] for c in response.json()["complaints"]] == [complaint.complaint_id]

async def test_sort_by_priority_follows_severity(client, viewer, make_complaint):
    for priority in (ComplaintPriority.HIGH, ComplaintPriority.LOW, ComplaintPriority.URGENT, ComplaintPriority.MEDIUM):
        await make_complaint(priority=priority)

    response = await client.get(
        "/api/admin/complaints",
        params={"sortBy": "priority", "sortOrder": "asc"},
        headers=auth_headers(viewer),
    )
    assert [c["priority"] for c in response.json()["complaints"]] == ["LOW", "MEDIUM", "HIGH", "URGENT"]

async def test_grouped_stats(client, viewer, make_complaint):
    await make_complaint(status=ComplaintStatus.NEW)
    await make_complaint(status=ComplaintStatus.NEW)
    await make_complaint(status=ComplaintStatus.CLOSED, category=ComplaintCategory.SAFETY)

    response = await client.post(
        "/api/admin/complaints", json={"groupBy": "status"}, headers=auth_headers(viewer)
    )
    assert response.status_code == 200
    assert response.json()["stats"] == [{"status": "NEW", "count": 2}, {"status": "CLOSED", "count": 1}]

    filtered = await client.post(
        "/api/admin/complaints",
        json={"groupBy": "category", "filters": {"status": "NEW"}},
        headers=auth_headers(viewer),
    )
    assert filtered.json()["stats"] == [{"category": "EQUIPMENT", "count": 2}]

    invalid = await client.post("/api/admin/complaints", json={"groupBy": "title"}, headers=auth_headers(viewer))
    assert invalid.status_code == 400

async def test_notification_inbox_and_mark_read(client, admin, viewer, make_complaint):
    complaint = await make_complaint(priority=ComplaintPriority.URGENT, category=ComplaintCategory.SAFETY)
    await client.patch(
        f"/api/admin/complaints/{complaint.complaint_id}",
        json={"status": "RESOLVED"},
        headers=auth_headers(admin),
    )

    inbox = await client.get("/api/admin/notifications", headers=auth_headers(viewer))
    assert inbox.status_code == 200
    body = inbox.json()
    assert body["stats"]["unread_count"] == 1
    assert body["stats"]["recent_count"] == 1
    assert {a["id"] for a in body["system_alerts"]} == {"high-priority-alert", "safety-alert"}
    notification_id = body["notifications"][0]["notification_id"]

    marked = await client.patch(
        "/api/admin/notifications", json={"notificationId": notification_id}, headers=auth_headers(viewer)
    )
    assert marked.json()["unread_count"] == 0

    unread_only = await client.get(
        "/api/admin/notifications", params={"unreadOnly": "true"}, headers=auth_headers(viewer)
    )
    assert unread_only.json()["notifications"] == []

    # 管理員自己的通知仍是未讀
    admin_inbox = await client.get("/api/admin/notifications", headers=auth_headers(admin))
    assert admin_inbox.json()["stats"]["unread_count"] == 1

    all_read = await client.patch(
        "/api/admin/notifications", json={"markAllAsRead": True}, headers=auth_headers(admin)
    )
    assert all_read.json()["unread_count"] == 0

    empty = await client.patch("/api/admin/notifications", json={}, headers=auth_headers(admin))
    assert empty.status_code == 400

async def test_stream_requires_staff_token(client):
    response = await client.get("/api/admin/notifications/stream")
    assert response.status_code == 401

async def test_dashboard_and_category_analytics(client, viewer, make_complaint):
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    await make_complaint(
        category=ComplaintCategory.TECHNICAL,
        status=ComplaintStatus.RESOLVED,
        created_at=now - timedelta(hours=10),
        updated_at=now - timedelta(hours=6),
    )
    await make_complaint(category=ComplaintCategory.TECHNICAL)
    await make_complaint(category=ComplaintCategory.SAFETY, priority=ComplaintPriority.URGENT)

    stats = await client.get("/api/dashboard/stats", headers=auth_headers(viewer))
    assert stats.status_code == 200
    body = stats.json()
    assert body["total_complaints"] == 3
    assert body["new_complaints"] == 2
    assert body["resolved_complaints"] == 1
    assert body["avg_response_time"] == 4.0
    assert body["category_breakdown"][0] == {"category": "TECHNICAL", "count": 2}
    assert sum(body["monthly_trends"].values()) == 3

    analytics = await client.get(
        "/api/admin/analytics/categories", params={"timeRange": "1month"}, headers=auth_headers(viewer)
    )
    assert analytics.status_code == 200
    data = analytics.json()
    assert data["overall_stats"]["total_complaints"] == 3
    assert data["overall_stats"]["most_common_category"] == "TECHNICAL"
    technical = data["category_stats"][0]
    assert technical["resolved_count"] == 1
    assert technical["resolution_rate"] == 50
    assert technical["avg_resolution_time"] == 4.0

    invalid = await client.get(
        "/api/admin/analytics/categories", params={"timeRange": "10years"}, headers=auth_headers(viewer)
    )
    assert invalid.status_code == 400

async def test_exports(client, viewer, make_complaint):
    await make_complaint()

    excel = await client.get(
        "/api/admin/analytics/export", params={"format": "excel"}, headers=auth_headers(viewer)
    )
    assert excel.status_code == 200
    assert excel.content[:2] == b"PK"
    assert 'filename="analytics.xlsx"' in excel.headers["content-disposition"]

    pdf = await client.get("/api/admin/analytics/export", headers=auth_headers(viewer))
    assert pdf.status_code == 200
    assert pdf.content.startswith(b"%PDF")
    assert pdf.headers["content-type"] == "application/pdf"

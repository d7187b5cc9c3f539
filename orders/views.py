import logging

from django.db import models, transaction
from django.http import HttpResponseBadRequest, HttpResponseNotFound, JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from .domain import Status, format_timestamp, parse_timestamp
from .errors import ValidationError
from .models import Order
from .publisher import publish_order_created, publish_order_status_updated
from .transitions import can_transition
from .validators import BadJSON, parse_json_body, validate_order_request

logger = logging.getLogger(__name__)


def _json(data, status=200):
    return JsonResponse(data, status=status, json_dumps_params={"ensure_ascii": False})


def _entry_key(entry):
    if not isinstance(entry, dict):
        return None
    return entry.get("status"), entry.get("userId"), parse_timestamp(entry.get("timestamp"))


def _appended_entry(stored, incoming, new_status: Status):
    """
    Return the single new history entry when `incoming` is `stored` plus
    exactly one entry for `new_status`; None otherwise.
    """
    if not isinstance(incoming, list) or len(incoming) != len(stored) + 1:
        return None
    for old, new in zip(stored, incoming):
        if _entry_key(old) != _entry_key(new):
            return None
    last = incoming[-1]
    if not isinstance(last, dict) or last.get("status") != new_status.value:
        return None
    timestamp = parse_timestamp(last.get("timestamp"))
    user_id = last.get("userId")
    if timestamp is None or not isinstance(user_id, str) or not user_id:
        return None
    return {"status": new_status.value, "timestamp": format_timestamp(timestamp), "userId": user_id}


@require_http_methods(["GET", "POST"])
def orders_collection(request):
    if request.method == "POST":
        return create_order(request)
    return list_orders(request)


def list_orders(request):
    if request.GET.get("orderBy", "createdAt") != "createdAt":
        return HttpResponseBadRequest("only createdAt ordering is supported")
    if request.GET.get("direction", "desc") == "asc":
        rows = Order.objects.order_by("created_at", "id")
    else:
        rows = Order.objects.order_by("-created_at", "id")
    return _json({"orders": [row.to_document() for row in rows]})


def create_order(request):
    try:
        body = parse_json_body(request)
    except BadJSON:
        return HttpResponseBadRequest("invalid payload")

    try:
        req = validate_order_request(body.get("customerName"), body.get("phone"), body.get("notes"))
    except ValidationError as e:
        return _json({"ok": False, "field": e.field, "reason": e.reason, "error": str(e)}, 400)

    created_by = body.get("createdBy")
    if not isinstance(created_by, str) or not created_by.strip():
        return _json({"ok": False, "field": "createdBy", "error": "createdBy is required"}, 400)
    created_at = parse_timestamp(body.get("createdAt")) or timezone.now()

    row = Order.objects.create(
        customer_name=req.customer_name,
        phone=req.phone,
        notes=req.notes,
        status=Status.NEW.value,
        created_at=created_at,
        updated_at=created_at,
        created_by=created_by,
        history=[{"status": Status.NEW.value, "timestamp": format_timestamp(created_at), "userId": created_by}],
    )
    logger.info("order %s created by %s", row.id, created_by)

    publish_order_created(row.id, row.status)
    return _json({"ok": True, "id": row.id, "order": row.to_document()}, 201)


@require_http_methods(["GET", "PATCH"])
def order_detail(request, order_id: str):
    if request.method == "PATCH":
        return update_order(request, order_id)
    try:
        row = Order.objects.get(pk=order_id)
    except Order.DoesNotExist:
        return HttpResponseNotFound("order not found")
    return _json(row.to_document())


def update_order(request, order_id: str):
    """
    Hot path:
    - Advances the status in a short transaction (SELECT ... FOR UPDATE + UPDATE).
    - Writes only if 'expectedStatus' and/or 'version' still match (409 otherwise).
    - History must be the stored history plus exactly one entry (append-only).
    - Publishes the event outside the transaction.
    """
    try:
        body = parse_json_body(request)
        new_status = Status(body["status"])
        history = body["history"]
        expected_status = body.get("expectedStatus")
        expected_version = body.get("version")
        meta = body.get("meta", {})
    except (BadJSON, KeyError, ValueError):
        return HttpResponseBadRequest("invalid payload")
    updated_at = parse_timestamp(body.get("updatedAt")) or timezone.now()

    with transaction.atomic():
        # Row lock against lost updates
        q = Order.objects.select_for_update().filter(id=order_id)
        if expected_status is not None:
            q = q.filter(status=expected_status)
        if expected_version is not None:
            q = q.filter(version=expected_version)
        row = q.first()

        if row is None:
            exists = Order.objects.filter(id=order_id).exists()
            if exists:
                return _json({"ok": False, "conflict": True, "reason": "order changed since it was read"}, 409)
            return HttpResponseNotFound("order not found")

        if not can_transition(Status(row.status), new_status):
            return HttpResponseBadRequest(f"cannot move from {row.status} to {new_status.value}")

        entry = _appended_entry(row.history, history, new_status)
        if entry is None:
            return HttpResponseBadRequest("history must append exactly one entry for the new status")

        Order.objects.filter(pk=row.pk).update(
            status=new_status.value,
            updated_at=updated_at,
            history=list(row.history) + [entry],
            version=models.F("version") + 1,
        )
        row.refresh_from_db()

    publish_order_status_updated(row.id, row.status, row.version, meta=meta if isinstance(meta, dict) else None)
    return _json({"ok": True, "order": row.to_document()})

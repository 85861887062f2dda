"""Read side of orders: listings from the summary projection, detail from the aggregate.

Listings are scoped by caller. Customers see their own orders, stall staff
see their business's orders, admins see everything.
"""

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.actors import Role
from ordering.catalog import get_catalog
from ordering.errors import backing_store
from ordering.order.order import Order, OrderStatus
from ordering.projections.order_summary import OrderSummary
from ordering.utils.timestamps import isoformat

# sort name → (attribute, descending)
SORT_OPTIONS = {
    "newest": ("created_at", True),
    "oldest": ("created_at", False),
    "scheduled": ("scheduled_for", False),
    "total": ("total_cents", True),
}

MAX_PAGE_SIZE = 100


def _names(catalog):
    """Memoised name lookups for one request."""
    cache = {}

    def lookup(kind, key):
        if key is None:
            return None
        if (kind, key) not in cache:
            record = getattr(catalog, f"get_{kind}")(str(key))
            cache[(kind, key)] = record.get("name") if record else None
        return cache[(kind, key)]

    return lookup


def list_orders(caller, status=None, sort="newest", page=1, page_size=20) -> dict:
    if sort not in SORT_OPTIONS:
        raise ValidationError({"sort": [f"Sort must be one of {', '.join(SORT_OPTIONS)}"]})
    if page < 1 or page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationError({"page": [f"Page must be >= 1 and page size between 1 and {MAX_PAGE_SIZE}"]})
    wanted = OrderStatus.parse(status) if status else None

    criteria = {}
    if caller.role == Role.CUSTOMER:
        criteria["customer_id"] = str(caller.id)
    elif caller.role == Role.STALL_STAFF:
        criteria["business_id"] = str(caller.business_id)

    with backing_store("order.list"):
        scoped = current_domain.repository_for(OrderSummary)._dao.query
        if criteria:
            scoped = scoped.filter(**criteria)

        stats = {s.value: scoped.filter(status=s.value).count() for s in OrderStatus}
        stats["total"] = scoped.count()

        query = scoped.filter(status=wanted.value) if wanted else scoped
        attribute, descending = SORT_OPTIONS[sort]
        results = (
            query.order_by([f"-{attribute}" if descending else attribute, "order_id"])
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        total = results.total

        name_of = _names(get_catalog())
        orders = [
            {
                "id": str(row.order_id),
                "customer_id": str(row.customer_id),
                "business_id": str(row.business_id),
                "stall_id": str(row.stall_id),
                "stall_name": name_of("stall", row.stall_id),
                "customer_name": name_of("customer", row.customer_id),
                "status": row.status,
                "item_count": row.item_count,
                "total_cents": row.total_cents,
                "currency": row.currency,
                "delivery_option": row.delivery_option,
                "payment_status": row.payment_status,
                "scheduled_for": isoformat(row.scheduled_for),
                "created_at": isoformat(row.created_at),
                "updated_at": isoformat(row.updated_at),
            }
            for row in results.items
        ]

    return {
        "orders": orders,
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": total,
            "pages": (total + page_size - 1) // page_size,
        },
        "stats": stats,
    }


def get_order_detail(order_id, caller) -> dict:
    """Full order with line items, history and display names."""
    with backing_store("order.get"):
        order = current_domain.repository_for(Order).get(order_id)
        order.assert_caller_may_act(caller)

        catalog = get_catalog()
        name_of = _names(catalog)
        detail = order.to_dict()
        detail["stall_name"] = name_of("stall", order.stall_id)
        detail["business_name"] = name_of("business", order.business_id)
        detail["customer_name"] = name_of("customer", order.customer_id)
        detail["allowed_transitions"] = order.allowed_transitions_for(caller)
    return detail

from enum import StrEnum

from tortoise import fields
from tortoise.models import Model


class OrderStatus(StrEnum):
    INITIALIZED = "INITIALIZED"  # created, awaiting payment/confirmation
    CONFIRMED = "CONFIRMED"
    ON_THE_WAY = "ON_THE_WAY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


class PaymentStatus(StrEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class User(Model):
    id = fields.IntField(primary_key=True)

    name = fields.CharField(max_length=255)
    email = fields.CharField(max_length=255, unique=True)
    password_hash = fields.CharField(max_length=255)
    roles = fields.JSONField(default=list)  # role names, e.g. ["CUSTOMER"]

    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:  # type: ignore
        table = "users"


class Resource(Model):
    id = fields.IntField(primary_key=True)

    name = fields.CharField(max_length=255)
    type = fields.CharField(max_length=64, default="OTHER")
    location = fields.CharField(max_length=255, null=True)
    active = fields.BooleanField(default=True)
    price_per_slot = fields.DecimalField(max_digits=10, decimal_places=2, null=True)

    managers: fields.ManyToManyRelation[User] = fields.ManyToManyField(
        "models.User", related_name="managed_resources", through="resource_managers"
    )

    class Meta:  # type: ignore
        table = "resources"


class Order(Model):
    id = fields.IntField(primary_key=True)  # monotonic, used for recency ordering

    user: fields.ForeignKeyNullableRelation[User] = fields.ForeignKeyField(
        "models.User", related_name="orders", null=True
    )
    order_date = fields.DatetimeField(auto_now_add=True)

    total_amount = fields.DecimalField(max_digits=10, decimal_places=2)
    order_status = fields.CharEnumField(OrderStatus, default=OrderStatus.INITIALIZED)
    payment_status = fields.CharEnumField(PaymentStatus, default=PaymentStatus.PENDING)

    is_booking = fields.BooleanField(default=False)
    booking_title = fields.CharField(max_length=255, null=True)  # "Booking: <resource>"
    booking_details = fields.TextField(null=True)

    # Null on orders created before resource linkage existed
    resource_id = fields.IntField(null=True, db_index=True)

    class Meta:  # type: ignore
        table = "orders"
        ordering = ["-id"]

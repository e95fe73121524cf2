# app/models/enums/delivery_status.py
import enum


class DeliveryStatus(str, enum.Enum):
    pending = "PENDING"
    delivered = "DELIVERED"
    returned = "RETURNED"

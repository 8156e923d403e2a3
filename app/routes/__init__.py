from .order_records import order_records_bp

__all__ = ["order_records_bp"]

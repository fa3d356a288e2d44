from typing import Optional
from uuid import uuid4


class UserFactory:
    @staticmethod
    def create_user_data(
        role: str = "driver",
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        phone_number: Optional[str] = "01012345678",
        password: str = "s3cret-pass",
    ) -> dict:
        suffix = uuid4().hex[:8]
        return {
            "email": email or f"{role}.{suffix}@fleetmail.com",
            "password": password,
            "role": role,
            "full_name": full_name or f"{role.title()} {suffix}",
            "phone_number": phone_number,
        }


class OrderFactory:
    @staticmethod
    def create_order_data(
        restaurant_id: int,
        customer_phone: str = "01098765432",
        collection_amount: int = 25000,
        delivery_fee: int = 3000,
        customer_name: str = "Mona Adel",
        delivery_address: str = "12 Tahrir Street, Downtown",
        **overrides,
    ) -> dict:
        data = {
            "restaurant_id": restaurant_id,
            "customer_name": customer_name,
            "customer_phone": customer_phone,
            "delivery_address": delivery_address,
            "collection_amount": collection_amount,
            "delivery_fee": delivery_fee,
        }
        data.update(overrides)
        return data

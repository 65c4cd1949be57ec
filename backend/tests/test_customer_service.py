import pytest

from justsell.errors import InsufficientPointsError, NotFoundError, ValidationError
from justsell.repositories import CustomerRepository
from justsell.services import customer_service


def test_create_encrypts_contact_fields(db_session):
    customer = customer_service.create_customer({
        "first_name": "Sam",
        "last_name": "Lee",
        "email": "Sam@Example.com",
        "date_of_birth": "1985-03-02",
    })
    assert "example.com" not in customer.email.lower()
    assert CustomerRepository().reveal(customer, "email") == "Sam@Example.com"
    assert customer.loyalty_tier == "BRONZE"


@pytest.mark.parametrize(
    "payload",
    [
        {"first_name": "Sam"},
        {"first_name": "Sam", "last_name": "Lee", "email": "nope"},
        {"first_name": "Sam", "last_name": "Lee", "date_of_birth": "2999-01-01"},
        {"first_name": "Sam", "last_name": "Lee", "loyalty_points": 500},
    ],
)
def test_create_rejects(db_session, payload):
    with pytest.raises(ValidationError):
        customer_service.create_customer(payload)


def test_update_bumps_version(db_session, customer):
    before = customer.version_id
    customer_service.update_customer(customer.id, {"last_name": "Smith"})
    assert customer.last_name == "Smith"
    assert customer.version_id == before + 1


def test_loyalty_earn_and_redeem(db_session, customer):
    customer_service.adjust_loyalty_points(customer.id, "earn", 120)
    customer_service.adjust_loyalty_points(customer.id, "redeem", "20")
    assert customer.loyalty_points == 100
    assert customer.points_lifetime_earned == 120
    assert customer.points_lifetime_redeemed == 20

    with pytest.raises(InsufficientPointsError):
        customer_service.adjust_loyalty_points(customer.id, "redeem", 101)
    with pytest.raises(ValidationError):
        customer_service.adjust_loyalty_points(customer.id, "gift", 1)
    with pytest.raises(ValidationError):
        customer_service.adjust_loyalty_points(customer.id, "earn", 0)


def test_deactivate(db_session, customer):
    customer_service.deactivate_customer(customer.id)
    assert customer.is_active is False
    with pytest.raises(NotFoundError):
        customer_service.get_customer(customer.id, active_only=True)
    assert customer_service.get_customer(customer.id).id == customer.id


def test_missing(db_session):
    with pytest.raises(NotFoundError):
        customer_service.get_customer(404)

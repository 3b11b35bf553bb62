from decimal import Decimal

from users.models import User, BankAccount
from orders.models import Order, OrderItem


def create_parties():
    customer = User.objects.create_user(username='customer', password='pass', role='customer')
    provider = User.objects.create_user(username='provider', password='pass', role='provider')
    admin = User.objects.create_user(username='admin', password='pass', role='admin', is_staff=True)
    return customer, provider, admin


def create_order(customer, provider, status='in_use', deposits=(Decimal('1000000.00'),)):
    """每个押金值生成一件数量为1的商品"""
    order = Order.objects.create(customer=customer, provider=provider, status=status)
    for idx, deposit in enumerate(deposits, start=1):
        OrderItem.objects.create(
            order=order,
            product_name=f'设备{idx}',
            quantity=1,
            deposit_per_unit=deposit,
            daily_rate=Decimal('100.00'),
            rental_days=7,
        )
    return order


def create_bank_account(user, primary=True):
    return BankAccount.objects.create(
        user=user,
        bank_name='招商银行',
        account_number='6225880112345678',
        account_holder_name='张三',
        is_primary=primary,
    )

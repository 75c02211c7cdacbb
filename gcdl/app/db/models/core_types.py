import enum

class Role(str, enum.Enum):
    ceo = "CEO"
    manager = "Manager"
    sales_agent = "Sales Agent"

class DealerType(str, enum.Enum):
    individual = "individual"
    company = "company"
    farm = "farm"

class PaymentType(str, enum.Enum):
    cash = "cash"
    credit = "credit"

class PaymentStatus(str, enum.Enum):
    pending = "pending"
    partial = "partial"
    paid = "paid"

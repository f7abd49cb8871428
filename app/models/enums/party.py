# app/models/enums/party.py
# Status and classification enums shared by suppliers and customers.
import enum


class SupplierStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    blacklisted = "blacklisted"
    pending_approval = "pending_approval"


class SupplierType(str, enum.Enum):
    manufacturer = "manufacturer"
    distributor = "distributor"
    wholesaler = "wholesaler"
    retailer = "retailer"
    service_provider = "service_provider"


class PaymentTerms(str, enum.Enum):
    cod = "cod"
    net_15 = "net_15"
    net_30 = "net_30"
    net_45 = "net_45"
    net_60 = "net_60"
    net_90 = "net_90"
    prepaid = "prepaid"


class CustomerStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"
    prospect = "prospect"


class CustomerType(str, enum.Enum):
    individual = "individual"
    business = "business"
    government = "government"
    non_profit = "non_profit"


class CreditStatus(str, enum.Enum):
    good = "good"
    watch = "watch"
    hold = "hold"
    collections = "collections"


class CustomerPriority(str, enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"
    vip = "vip"


class PriceTier(str, enum.Enum):
    standard = "standard"
    bronze = "bronze"
    silver = "silver"
    gold = "gold"
    platinum = "platinum"

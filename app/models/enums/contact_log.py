import enum


class ContactableType(str, enum.Enum):
    supplier = "supplier"
    customer = "customer"


class ContactType(str, enum.Enum):
    call = "call"
    email = "email"
    meeting = "meeting"
    visit = "visit"
    message = "message"
    other = "other"


class ContactDirection(str, enum.Enum):
    inbound = "inbound"
    outbound = "outbound"


class ContactOutcome(str, enum.Enum):
    successful = "successful"
    no_answer = "no_answer"
    follow_up_needed = "follow_up_needed"
    resolved = "resolved"
    escalated = "escalated"

from prometheus_client import Counter

ACCESS_DECISIONS_COUNTER = Counter(
    'lodge_access_decisions_total',
    'Access decisions taken by the guard',
    ['resource', 'action', 'reason'],
)

ROLE_PROMOTIONS_COUNTER = Counter(
    'lodge_access_role_promotions_total',
    'Global role changes caused by lodge role edits',
)

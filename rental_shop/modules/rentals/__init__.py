"""
Rental lifecycle and billing.

Pure steps (no DB access):
    tiers       total_spent -> loyalty tier
    merge       new order -> open rental (+ stock reservation)
    proration   elapsed days + per-line charge of a return
    settlement  discount / advance / previous debt / cash -> new balance
    invoicing   immutable invoice record
    state       rental after a return
    ledger      customer spend / debt / tier after a settlement
    returns     the whole return event composed from the steps above

service.RentalService runs them against the repositories.
"""

"""
Orders app.

Holds the purchase records the issue engine resolves against:
- Order: totals, shipping address, fulfillment status machine
- OrderItem: one line of an order, with reprint lineage
- CancellationRequest: customer request to cancel an unshipped order

Reprint orders are ordinary Orders with zero totals and no Payment;
their items point back at the paying order and item they replace.
"""

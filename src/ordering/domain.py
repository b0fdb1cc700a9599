"""Ordering bounded context: order lifecycle, discounts and fulfillment saga.

Handles the Order aggregate and its status machine, discount calculation,
and the saga that confirms, pays for, reserves and ships an order against
the stock and payment services.
"""

from protean.domain import Domain

from ordering.utils.logging import configure_logging

configure_logging()

ordering = Domain(name="ordering")

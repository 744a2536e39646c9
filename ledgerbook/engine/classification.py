"""
Classification Engine

Computes every client's all-time balance and splits clients into debtors
(positive balance, they owe the business) and creditors (negative
balance, the business owes them). A client at exactly zero is in
neither list.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence

from ledgerbook.models.ledger import ZERO, Client, Transaction
from ledgerbook.models.reports import ClientBalance, ClientClassification


def compute_client_balance(
    client: Client,
    transactions: Iterable[Transaction],
) -> ClientBalance:
    """
    Totals for one client over all of its entries (no date bound).

    Entries belonging to other clients are ignored.
    """
    total_debit = ZERO
    total_credit = ZERO
    count = 0
    for transaction in transactions:
        if transaction.client_id != client.id:
            continue
        total_debit += transaction.debit
        total_credit += transaction.credit
        count += 1

    return ClientBalance(
        client_id=client.id,
        client_name=client.client_name,
        shop_name=client.shop_name,
        city=client.city,
        mobile_number=client.mobile_number,
        opening_balance=client.opening_balance,
        total_debit=total_debit,
        total_credit=total_credit,
        current_balance=client.opening_balance + total_debit - total_credit,
        transaction_count=count,
    )


def compute_client_balances(
    clients: Sequence[Client],
    transactions: Iterable[Transaction],
) -> list[ClientBalance]:
    """
    Balances for every client, ordered by name (case-insensitive) then id.

    Clients without entries are included with their opening balance.
    """
    by_client: dict[int, list[Transaction]] = defaultdict(list)
    for transaction in transactions:
        by_client[transaction.client_id].append(transaction)

    balances = [
        compute_client_balance(client, by_client.get(client.id, []))
        for client in clients
    ]
    balances.sort(key=lambda b: (b.client_name.lower(), b.client_id))
    return balances


def split_by_balance(balances: Iterable[ClientBalance]) -> ClientClassification:
    """Partition precomputed balances into debtors and creditors."""
    debtors = []
    creditors = []
    for balance in balances:
        if balance.current_balance > 0:
            debtors.append(balance)
        elif balance.current_balance < 0:
            creditors.append(balance)

    # Largest debtor first; most negative creditor first
    debtors.sort(key=lambda b: (-b.current_balance, b.client_id))
    creditors.sort(key=lambda b: (b.current_balance, b.client_id))
    return ClientClassification(debtors=debtors, creditors=creditors)


def classify_clients(
    clients: Sequence[Client],
    transactions: Iterable[Transaction],
) -> ClientClassification:
    """Compute balances for all clients and split them."""
    return split_by_balance(compute_client_balances(clients, transactions))

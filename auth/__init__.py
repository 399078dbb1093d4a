"""auth/ -- Authentication and ownership scoping for ExpenseTracker.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/, core/, or ledger/.
api/ imports from auth/, not the other way around.
"""

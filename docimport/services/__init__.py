"""Services package: blob storage, PDF splitting, prompt context, duplicate reconciliation, and ledger commits."""

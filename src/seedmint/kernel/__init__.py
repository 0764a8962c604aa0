"""Pure kernel: seed derivation, generator, request ledger."""

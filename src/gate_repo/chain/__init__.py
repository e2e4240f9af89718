"""Ethereum JSON-RPC, ERC-20 and historical-balance clients."""

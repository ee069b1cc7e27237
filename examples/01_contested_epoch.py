"""
Example 01: A Contested Epoch
=============================

This example runs one epoch of competing transactions through each
selection strategy:
1. Give Alice two 10-unit outputs.
2. Build three spends: one wide spend of both outputs paying a fee of 5,
   and two narrow spends of one output each paying a fee of 3 apiece.
3. Hand the same batch to the greedy, exhaustive and first-seen handlers.
4. Compare which transactions each accepted and the fees they collected.

Greedy takes the single highest fee (5); the exhaustive search finds that
the two narrow spends together pay more (6).

Usage:
    python -m examples.01_contested_epoch
"""

import logging

from epochledger import TxHandler, Transaction, TxOutput, UTXO, UTXOPool
from epochledger.crypto import PrivateKey, double_sha256


def spend(utxos, owner, value, recipient):
    """Build a transaction moving ``utxos`` to ``recipient``, signed by ``owner``."""
    tx = Transaction()
    for utxo in utxos:
        tx.add_input(utxo.tx_hash, utxo.index)
    tx.add_output(value, recipient.public_key)
    for i in range(len(utxos)):
        tx.sign_input(i, owner)
    return tx


def main():
    logging.basicConfig(level=logging.INFO, format="  %(name)s: %(message)s")

    print("=" * 60)
    print("Epoch Ledger - Contested Epoch Example")
    print("=" * 60)

    # Step 1: Seed the pool.
    print("\n[Step 1] Funding Alice...")
    alice = PrivateKey.generate()
    bob = PrivateKey.generate()

    pool = UTXOPool()
    u1 = UTXO(double_sha256(b"genesis-1"), 0)
    u2 = UTXO(double_sha256(b"genesis-2"), 0)
    pool.add(u1, TxOutput(10, alice.public_key))
    pool.add(u2, TxOutput(10, alice.public_key))
    print(f"  Alice's address: {alice.public_key.to_address()}")
    print(f"  Alice's balance: {pool.get_balance(alice.public_key.to_address())}")

    # Step 2: Build the competing spends.
    print("\n[Step 2] Building candidates...")
    candidates = {
        "wide": spend([u1, u2], alice, 15, bob),
        "narrow-1": spend([u1], alice, 7, bob),
        "narrow-2": spend([u2], alice, 7, bob),
    }
    names = {tx.hash: name for name, tx in candidates.items()}
    for name, tx in candidates.items():
        print(f"  {name:<9} {tx.txid[:16]}...  inputs={len(tx.inputs)}")

    # Step 3/4: Run each strategy on its own handler.
    print("\n[Step 3] Running one epoch per strategy...")
    for strategy in ("greedy", "exhaustive", "first_seen"):
        handler = TxHandler(pool, strategy=strategy)
        fees = {tx.hash: handler.tx_fee(tx) for tx in candidates.values()}
        accepted = handler.handle_epoch(list(candidates.values()))

        collected = sum(fees[tx.hash] for tx in accepted)
        chosen = ", ".join(names[tx.hash] for tx in accepted)
        print(f"  {strategy:<11} accepted [{chosen}] fee={collected} "
              f"utxos={len(handler.utxo_pool)}")

    # The caller's pool is never touched by a handler.
    print(f"\n  Original pool still holds {len(pool)} UTXOs")

    print("\n" + "=" * 60)
    print("Done.")
    print("=" * 60)


if __name__ == "__main__":
    main()

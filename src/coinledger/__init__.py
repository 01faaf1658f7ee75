"""Device account ledger: coins, referrals, session analytics and premium entitlements."""

#!/usr/bin/env python3
"""
Sample Data Generator
=====================

Generates a synthetic retail transaction log for trying out the RFM
insights suite.

Usage:
    python data/generate_sample_data.py

This will create:
    - sample_transactions.csv: ~10k transactions across 1000 customers
    - test_transactions_small.csv: 500 transactions across 100 customers
"""

import os

import numpy as np
import pandas as pd

# Set random seed for reproducibility
np.random.seed(42)

REGIONS = ['North', 'South', 'East', 'West', 'Central']


def generate_transaction_log(
    n_customers: int = 1000,
    n_transactions: int = 10000,
    start_date: str = '2023-01-01',
    end_date: str = '2024-12-31',
    malformed_rate: float = 0.005
) -> pd.DataFrame:
    """
    Generate a synthetic transaction log in the upload format.

    Creates customers with varying:
    - Purchase frequency
    - Average order value
    - Home region

    A small share of rows get a broken date or amount so the upload path's
    row skipping is exercised.

    Args:
        n_customers: Number of unique customers
        n_transactions: Total number of transactions
        start_date: Start date
        end_date: End date
        malformed_rate: Fraction of rows with an unparseable field

    Returns:
        DataFrame with 'Order Date' (dd/mm/yyyy), 'Customer ID',
        'Total Amount' (currency formatted) and 'Region' columns
    """
    start = pd.Timestamp(start_date)
    end = pd.Timestamp(end_date)
    date_range = (end - start).days

    # Customer profiles
    customer_profiles = {}
    for i in range(1, n_customers + 1):
        customer_profiles[i] = {
            'avg_amount': np.random.lognormal(4, 0.8),  # Skewed distribution
            'frequency': np.random.choice(['high', 'medium', 'low'], p=[0.2, 0.5, 0.3]),
            'region': np.random.choice(REGIONS),
        }

    records = []

    for _ in range(n_transactions):
        customer_id = np.random.randint(1, n_customers + 1)
        profile = customer_profiles[customer_id]

        if profile['frequency'] == 'high':
            days_ago = int(np.random.exponential(30))
        elif profile['frequency'] == 'medium':
            days_ago = int(np.random.exponential(90))
        else:
            days_ago = int(np.random.exponential(180))

        days_ago = min(days_ago, date_range)
        txn_date = end - pd.Timedelta(days=days_ago)

        amount = max(1, np.random.normal(profile['avg_amount'], profile['avg_amount'] * 0.3))

        records.append({
            'Order Date': txn_date.strftime('%d/%m/%Y'),
            'Customer ID': f"CUST-{customer_id:05d}",
            'Total Amount': f"₱{amount:,.2f}",
            'Region': profile['region'],
        })

    df = pd.DataFrame(records)

    n_malformed = int(len(df) * malformed_rate)
    if n_malformed:
        broken = np.random.choice(df.index, size=n_malformed, replace=False)
        half = n_malformed // 2
        df.loc[broken[:half], 'Order Date'] = '2024-13-45'
        df.loc[broken[half:], 'Total Amount'] = 'n/a'

    return df


def main():
    """Generate the sample datasets."""
    script_dir = os.path.dirname(os.path.abspath(__file__))

    print("Generating sample datasets...")

    transactions_df = generate_transaction_log()
    transactions_path = os.path.join(script_dir, 'sample_transactions.csv')
    transactions_df.to_csv(transactions_path, index=False)
    print(f"  Saved {len(transactions_df)} records to {transactions_path}")

    small_df = generate_transaction_log(n_customers=100, n_transactions=500)
    small_path = os.path.join(script_dir, 'test_transactions_small.csv')
    small_df.to_csv(small_path, index=False)
    print(f"  Saved {len(small_df)} records to {small_path}")

    print("\nSample data generation complete!")
    print(f"  Transactions: {len(transactions_df)} rows, "
          f"{transactions_df['Customer ID'].nunique()} customers")


if __name__ == '__main__':
    main()

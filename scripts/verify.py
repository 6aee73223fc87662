"""
Excel Verification Script

Verifies data integrity of the invoice export file.
Run from project root: python scripts/verify.py

Version: 1.0.0
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from restaurant_api.services.excel_manager import INVOICES_FILE, audit_invoice_frame


def verify_excel():
    """Verify the invoice workbook after a simulation run."""

    print("=" * 60)
    print("🔍 INVOICE EXPORT VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {INVOICES_FILE}")
    print("=" * 60)

    # Check if file exists
    if not INVOICES_FILE.exists():
        print("\n❌ Excel file not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    # Load Excel file
    try:
        df = pd.read_excel(INVOICES_FILE, engine='openpyxl')
        print(f"\n✅ File loaded successfully!")
    except Exception as e:
        print(f"\n❌ Could not read Excel file: {e}")
        return False

    # Statistics
    print(f"\n📊 STATISTICS:")
    print(f"   Total Invoices: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    # Integrity checks
    problems = audit_invoice_frame(df)
    if problems:
        print(f"\n⚠️ {len(problems)} INTEGRITY PROBLEM(S):")
        for problem in problems:
            print(f"   - {problem}")
    else:
        print(f"\n✅ No duplicate, malformed or out-of-range invoices")

    # Revenue
    if 'total_amount' in df.columns and len(df) > 0:
        amounts = pd.to_numeric(df['total_amount'], errors='coerce')
        total = amounts.sum()
        avg = amounts.mean()
        print(f"\n💰 BILLED:")
        print(f"   Total: ${total:.2f}")
        print(f"   Average: ${avg:.2f}")

    if 'payment_status' in df.columns and len(df) > 0:
        print(f"\n🧾 PAYMENT STATUS:")
        for status, count in df['payment_status'].value_counts().items():
            print(f"   {status}: {count}")

    # Sample data
    print(f"\n📋 RECENT INVOICES:")
    print("-" * 60)
    if len(df) > 0:
        cols = ['invoice_id', 'order_id', 'table_id', 'total_amount', 'payment_status']
        cols = [c for c in cols if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if not problems else "❌ VERIFICATION FAILED")
    print("=" * 60)

    return not problems


if __name__ == "__main__":
    sys.exit(0 if verify_excel() else 1)

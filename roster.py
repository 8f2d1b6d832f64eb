"""Read a staff/helper roster from a workbook and write payout sheets back out."""
from pathlib import Path
from typing import List, Tuple

import pandas as pd

from allocation import Helper, Results, StaffMember, clamp_weight


class RosterError(ValueError):
    pass


def _weight_column(df: pd.DataFrame, column: str) -> pd.Series:
    return pd.to_numeric(df[column], errors='coerce').fillna(0.0).map(clamp_weight)


def _id_text(value) -> str:
    if pd.isna(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _read_sheet(xls: pd.ExcelFile, sheet: str, weight: str, prefix: str) -> pd.DataFrame:
    if sheet not in xls.sheet_names:
        return pd.DataFrame(columns=['id', 'name', weight])
    df = pd.read_excel(xls, sheet_name=sheet)
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in ('name', weight) if c not in df.columns]
    if missing:
        raise RosterError(f"sheet '{sheet}' is missing column(s): {', '.join(missing)}")
    df = df.dropna(how='all')
    df['name'] = df['name'].fillna('').astype(str).str.strip()
    df[weight] = _weight_column(df, weight)
    ids = df['id'].map(_id_text) if 'id' in df.columns else [''] * len(df)
    # blank ids fall back to the row position
    df['id'] = [i or f"{prefix}-{n + 1}" for n, i in enumerate(ids)]
    return df


def load_roster(path) -> Tuple[List[StaffMember], List[Helper]]:
    """
    Load staff and helpers from the 'staff' and 'helpers' sheets of a workbook.

    Blank or non-numeric weights count as 0. A missing sheet is an empty group.
    """
    path = Path(path)
    if not path.exists():
        raise RosterError(f"file not found: {path}")
    xls = pd.ExcelFile(path, engine='openpyxl')
    staff_df = _read_sheet(xls, 'staff', 'share', 'staff')
    helpers_df = _read_sheet(xls, 'helpers', 'hours', 'helper')

    staff = [StaffMember(id=r.id, name=r.name, share=r.share) for r in staff_df.itertuples(index=False)]
    helpers = [Helper(id=r.id, name=r.name, hours=r.hours) for r in helpers_df.itertuples(index=False)]
    return staff, helpers


def payout_frames(results: Results, staff: List[StaffMember], helpers: List[Helper]):
    """Build the staff, helpers and summary tables for a computed result."""
    staff_amounts = {r.id: r for r in results.staff_rows}
    helper_amounts = {r.id: r for r in results.helper_rows}

    def rows(people, weight, amounts):
        out = []
        for p in people:
            r = amounts.get(p.id)
            out.append({
                'name': p.name,
                weight: clamp_weight(getattr(p, weight)),
                'amount': r.amount if r else 0.0,
                'percent': r.percent_of_group if r else 0.0,
            })
        return pd.DataFrame(out, columns=['name', weight, 'amount', 'percent'])

    summary = pd.DataFrame([
        {'key': 'staff_pct', 'value': results.applied_staff_pct},
        {'key': 'helper_pct', 'value': results.applied_helper_pct},
        {'key': 'staff_pot', 'value': results.staff_pot},
        {'key': 'helper_pot', 'value': results.helper_pot},
        {'key': 'explanation', 'value': results.explanation},
    ])
    return rows(staff, 'share', staff_amounts), rows(helpers, 'hours', helper_amounts), summary


def export_payouts(path, results: Results, staff: List[StaffMember], helpers: List[Helper]) -> Path:
    path = Path(path)
    staff_df, helpers_df, summary = payout_frames(results, staff, helpers)
    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        staff_df.to_excel(writer, sheet_name='staff', index=False)
        helpers_df.to_excel(writer, sheet_name='helpers', index=False)
        summary.to_excel(writer, sheet_name='summary', index=False)
    return path

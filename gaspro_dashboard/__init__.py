"""
GasPro Analytics — Gas Field Production Monitoring Dashboard

Analytics backend for daily gas/condensate/water production per field and
daily headcount against the organogram.

To run against Supabase instead of the local cache:
    Set SUPABASE_URL and SUPABASE_ANON_KEY (environment or .env). Tables
    production_records and personnel_records must exist with the columns
    of models.ProductionRecord / models.PersonnelRecord.

To connect to Streamlit/Dash:
    Build an AppState over store.open_store(), call load(), then pass
    state.production_df / state.personnel_df and the selected date to
    dashboard.get_dashboard_overview() for a plain dict of cards and charts.

To import a daily report workbook:
    AppState.import_workbook(bytes) reads the cells listed in
    config.FIELD_CELL_MAP and config.REPORT_DATE_CELL.
"""

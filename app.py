"""
Phin Cafe Reports - Square POS reporting API
Deployed on Render.com (`gunicorn app:app`)

Endpoints (period param: date=YYYY-MM-DD | week=YYYY-MM-DD | month=YYYY-MM | year=YYYY):
  GET  /                                       - Health check
  GET  /api/sales[/weekly|/monthly|/yearly]     - Sales totals by location
  GET  /api/sales/location?locationId=&date=    - One location's payments for a day
  GET  /api/sales/hourly[/weekly|/monthly|/yearly]?comparePrev=true
                                               - Hour-of-day heatmap, optional prior-period comparison
  GET  /api/refunds[/weekly|/monthly|/yearly]   - Refund totals by location
  GET  /api/items/{daily,weekly,monthly,yearly} - Item sales, variations merged
  GET  /api/itemsales?locationId=&date=         - One location's item sales for a day
  GET  /api/items/insights/{daily,weekly,monthly,yearly}[?locationId=]
                                               - Item sales with a written summary
  GET  /api/staff/shifts?date=                  - Labor shifts with team member names
  GET  /api/staff/team-members                  - Active team members
"""

import os

from phin_reports.app import create_app

app = create_app()


if __name__ == "__main__":
    port = int(os.getenv("PORT", "10000"))
    app.run(host="0.0.0.0", port=port)

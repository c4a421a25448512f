from roi_payouts.cli import app

app()

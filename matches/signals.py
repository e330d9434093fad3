from django.dispatch import Signal

# Sent after a result is committed. kwargs: match, league_id
result_recorded = Signal()

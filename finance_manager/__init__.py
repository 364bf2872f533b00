"""Top‑level package for the Finance Manager.

The primary modules are:

* ``cycle`` – budget-cycle windows starting on the salary renewal day
* ``aggregation`` – totals, category breakdowns and monthly trends
* ``snapshots`` – once-per-month savings snapshots
* ``state`` – application state and the actions that change it
* ``dashboard`` – a Streamlit app that ties everything together

To run the dashboard from the command line you can execute:

```bash
streamlit run finance_manager/dashboard.py
```
"""

from . import aggregation  # noqa: F401  # re-exported for convenience
from . import cycle  # noqa: F401  # re-exported for convenience
from . import snapshots  # noqa: F401  # re-exported for convenience

__all__ = ["aggregation", "cycle", "snapshots"]

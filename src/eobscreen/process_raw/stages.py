import pandas as pd

# Apoptosis states in their biological order. This order defines the integer
# stage codes used by the model.
STAGES = ("alive",
          "early_apoptotic",
          "late_apoptotic_necrotic",
          "dead_debris")

STAGE_DTYPE = pd.CategoricalDtype(categories=list(STAGES), ordered=True)

VEHICLE_LABEL = "Vehicle"

MEASUREMENT_COLUMNS = ["condition", "stage", "replicate", "value"]

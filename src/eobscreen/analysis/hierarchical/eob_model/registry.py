from .components import hierarchical
from .components import independent
from .components import pooled
from .components import observe

model_registry = {
    "cell_means":{
        "hierarchical":hierarchical,
        "independent":independent,
        "pooled":pooled,
    },
    "observe":observe,
}

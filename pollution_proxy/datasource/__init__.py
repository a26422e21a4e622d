from pollution_proxy.datasource.pollution import PollutionSource
from pollution_proxy.datasource.wikipedia import WikipediaDescriptionSource

__all__ = ["PollutionSource", "WikipediaDescriptionSource"]

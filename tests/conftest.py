import os
import warnings

# Ignore warnings from third-party ODM internals
warnings.filterwarnings("ignore", category=DeprecationWarning, module="beanie.*")

# Set test environment variables
os.environ.setdefault("YOUTUBE_API_KEY", "test-key")

# Import fixtures so they are available to all tests
from tests.fixtures.collab_fixtures import *  # noqa: E402, F403
from tests.fixtures.mongo_fixtures import *  # noqa: E402, F403

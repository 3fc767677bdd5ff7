"""mongowrap - run a throwaway MongoDB server for the duration of a task."""

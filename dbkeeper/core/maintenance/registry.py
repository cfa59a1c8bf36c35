"""
Operation catalog of the maintenance engine.

An operation is described once by an `OperationDescriptor` and kept in an
`OperationRegistry`. The registration order of the registry is the order in
which operations are listed and executed.

### Example:

```python
registry = OperationRegistry()
registry.register(
    OperationDescriptor(
        id='analyze_tables',
        label='ANALYZE all tables',
        description='Updates index statistics for better query plans.',
        executor=analyze,
    )
)
registry.get('analyze_tables').executor(True, RunParameters())
```

"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Union
from dbkeeper.core.exc import DuplicateOperationError, UnknownOperationError
from .results import OperationResult, RunParameters

Executor = Callable[[bool, RunParameters], Union[OperationResult, str]]


@dataclass(frozen=True)
class OperationDescriptor:
    """
    Static metadata of one maintenance operation.

    ### Attributes:

    - **id** (str): Unique and stable token, e.g. `delete_old_revisions`
    - **label** (str): Short human readable name
    - **description** (str): Explanation shown in listings
    - **executor** (callable): Called as `executor(dry_run, parameters)`

    """

    id: str
    label: str
    description: str
    executor: Executor = field(compare=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.id, str) or self.id.strip() == '':
            raise ValueError(f'operation id must be a non-empty string, got {self.id!r}')
        if not callable(self.executor):
            raise ValueError(f'executor of operation {self.id} is not callable')

    def as_dict(self):
        return dict(id=self.id, label=self.label, description=self.description)


class OperationRegistry:
    """
    Ordered catalog of operation descriptors.

    ### Methods:

    - **register**: Add a descriptor, ids must be unique
    - **get**: Lookup a descriptor by id
    - **list**: All descriptors in registration order
    - **ids**: All ids in registration order

    """

    def __init__(self, descriptors=()):
        self._operations: Dict[str, OperationDescriptor] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    def register(self, descriptor: OperationDescriptor) -> OperationDescriptor:
        if descriptor.id in self._operations:
            raise DuplicateOperationError(descriptor.id)
        self._operations[descriptor.id] = descriptor
        return descriptor

    def get(self, op_id: str) -> OperationDescriptor:
        try:
            return self._operations[op_id]
        except (KeyError, TypeError):
            raise UnknownOperationError(op_id) from None

    def list(self) -> List[OperationDescriptor]:
        return list(self._operations.values())

    def ids(self) -> List[str]:
        return list(self._operations.keys())

    def __contains__(self, op_id):
        try:
            return op_id in self._operations
        except TypeError:
            return False

    def __iter__(self) -> Iterator[OperationDescriptor]:
        return iter(self.list())

    def __len__(self):
        return len(self._operations)

def deep_merge(a, b):
    """
    Recursively merge `b` into `a`.

    - Primitives: b replaces a
    - Lists: elements from b are appended to a
    - Dicts: keys from b are merged into a

    ### Args:

    - **a** (any): The target, modified in place where possible
    - **b** (any): The source merged into a

    ### Returns:

    - **any**: The merged value

    ### Raises:

    - **ValueError**: If the types of a and b cannot be merged

    """
    if a is None or isinstance(a, (str, float, int)):
        return b
    if isinstance(a, list):
        if isinstance(b, list):
            a.extend(b)
        else:
            a.append(b)
        return a
    if isinstance(a, dict):
        if not isinstance(b, dict):
            raise ValueError(f'Cannot merge non-dict "{b}" into dict "{a}"')
        for key in b:
            a[key] = deep_merge(a[key], b[key]) if key in a else b[key]
        return a
    raise ValueError(f'Cannot merge "{b}" into "{a}"')

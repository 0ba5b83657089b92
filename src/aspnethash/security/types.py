from typing import Literal, get_args

HashScheme = Literal["mvc4", "webforms"]
HashSchemeArgs = get_args(HashScheme)

WorkMode = Literal["generate", "convert"]

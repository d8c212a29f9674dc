REDIS_USER_KEY = "user:{user_id}" # user id - user hash
REDIS_USER_EMAIL_KEY = "user:email:{email}" # lowercased email -> user id
REDIS_USERS_INDEX_KEY = "users" # set of user ids
REDIS_ROOM_MESSAGES_KEY = "room:messages:{slug}" # room id - list of JSON message records

# **Example `user:{id}` hash fields**
# - `id` = uuid hex
# - `name` = display name
# - `email` = login email (also the presence key on the realtime channel)
# - `role` = "admin" | "member"
# - `password_hash` = bcrypt hash
# - `created_at` = ISO timestamp
# - `last_seen` = ISO timestamp written on realtime disconnect

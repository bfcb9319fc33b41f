# db/models.py
"""
Supabase does not require ORM model classes.
Tables created in the Supabase dashboard:

Table: customers
- id (uuid, PK)
- customer_name (text)
- customer_email (text)
- customer_mobile (text)

Table: bookings
- id (uuid, PK)
- created_at (timestamptz)
- booking_reference (text)
- customer_id (uuid, FK → customers.id)
- booking_date (text, e.g. "Friday, 3 October 2025")
- booking_time (text, HH:MM:SS)
- table_numbers (text)
- number_of_people (int)
- channel (text)
- email_log (text, appended to by the send-preorder-email function)

Table: menus
- id (uuid, PK)
- name (text)
- description (text, nullable)
- price (numeric, nullable)
- category (text, nullable)
- photo_url (text, nullable)

Table: pre_orders
- id (uuid, PK)
- booking_id (uuid, FK → bookings.id)
- name (text)
- order_mode (text: 'group' | 'individual')
- customer_notes (text, nullable)
- submitted_at (timestamptz, default now())

Table: pre_order_items
- id (uuid, PK)
- pre_order_id (uuid, FK → pre_orders.id)
- attendee_id (uuid, nullable)
- menu_item_id (uuid, FK → menus.id)
- quantity (int)

Table: access_tokens
- token (text, PK)
- booking_id (uuid, FK → bookings.id)
- expires_at (timestamptz)
- used (bool, default false)

Table: preorders_settings  (single row)
- id (uuid, PK)
- min_large_table_size (int)
- created_at (timestamptz)
- updated_at (timestamptz)

A database webhook on INSERT into bookings calls the send-preorder-email
function with { "record": <new booking row> }.
"""
